"""
API - Shared REST boundary: error envelope, authentication, middleware and URLs.
"""
