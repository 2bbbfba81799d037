"""Refer & Earn: referral graph and two-level commission tracking service."""

__version__ = "1.0.0"
