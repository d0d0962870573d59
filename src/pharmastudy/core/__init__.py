"""Core logic shared by the API and the client.

Modules:
- auth: password hashing and access tokens
- media: image storage for study items
- quiz: quiz question generation
- search: search limits and matching rules
"""

__all__ = [
    "auth",
    "media",
    "quiz",
    "search",
]
