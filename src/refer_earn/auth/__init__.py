"""Password hashing, token issuance and caller identity."""
