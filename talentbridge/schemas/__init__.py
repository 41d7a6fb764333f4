"""
Schemas module - Request/Response schemas for API endpoints.

Everything lives in `talentbridge.schemas.schemas`; routes import from there.
"""
