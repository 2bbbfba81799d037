"""Domain layer for Refer & Earn.

Contains pure business rules, policy constants and the error taxonomy.
This layer has no dependencies on infrastructure concerns.
"""
