"""
bizdir.auth

Authentication/authorization package.

Responsibilities:
- Password hashing and JWT helpers.
- FastAPI auth dependencies (Principal + role checks + tenant ownership).
"""

# Package marker.
