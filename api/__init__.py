"""
FastAPI RESTful API for the Book Review platform.

This package provides:
- Account signup, login and cookie/Bearer session authentication
- Book catalog creation, browsing, filtering and search
- Reviews with ownership rules and a 30-day edit window
- A uniform {result, statusCode, message, success} response envelope
"""
