"""Password hashing, token issuance and request authentication."""
