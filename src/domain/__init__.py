"""
Domain layer for email dispatch business logic.

This layer contains:
- Data models (object references, provider response shapes, envelopes)
- Business logic (dispatch pipeline)
- Result types (explicit success/failure handling)
"""
