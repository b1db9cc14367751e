"""
Sanctuary Backend — Pydantic Request/Response Schemas
=======================================================

API contracts, separate from the SQLAlchemy models. Wire names are
camelCase (`mp3Url`, `expiresIn`, `userId`) via alias generation.
"""
