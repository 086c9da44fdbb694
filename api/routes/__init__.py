"""
HTTP routers mounted under /v1.
"""
