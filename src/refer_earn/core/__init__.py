"""Referral graph manager and commission propagation engine."""
