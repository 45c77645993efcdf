"""
Clients for third-party APIs called by the Lambda handlers.
"""
