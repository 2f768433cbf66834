"""
Shared domain primitives for the commerce apps (not a Django app).
"""
