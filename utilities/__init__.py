"""
Shared utilities for the Book Review API.
"""
