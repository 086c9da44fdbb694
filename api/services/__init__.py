"""
Business logic for users, books and reviews.

Services validate nothing themselves; they receive parsed payloads and an
explicit RequestContext, apply authorization rules and talk to storage.
"""
