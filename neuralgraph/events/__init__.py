"""Event bus and request-scoped routing traces."""
