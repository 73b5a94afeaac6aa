"""
Pytest suite for the Darzi order & discovery backend.

Test categories:
- Unit tests: state machine, geometry, validators and models
- Integration tests: services against in-memory or file-backed SQLite
- API tests: full FastAPI app through httpx's ASGI transport
"""
