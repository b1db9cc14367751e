"""
Sanctuary Backend — Path Parameter Parsing
============================================

Resource ids and list limits arrive as raw path segments and are parsed
here so every service applies the same rules.
"""

import logging
import uuid

from sanctuary.exceptions import DatabaseError

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 3

# Largest LIMIT both SQLite and PostgreSQL accept as a bound parameter
MAX_LIST_LIMIT = 2**31 - 1


def parse_id(raw_id: str, resource: str) -> uuid.UUID:
    """
    Parse a record id.

    A malformed id is a store-level failure, not a client validation error:
    it surfaces as a generic 500 like any other unexpected store error.
    """
    try:
        return uuid.UUID(str(raw_id))
    except ValueError:
        logger.warning("Malformed %s id: %r", resource, raw_id)
        raise DatabaseError(
            message=f"Could not look up the {resource}.",
            context={"resource": resource, "resource_id": str(raw_id)},
        )


def parse_limit(raw_limit: str, default: int = DEFAULT_LIST_LIMIT) -> int:
    """
    Positive integer from a path segment; anything else yields `default`.

    Values beyond MAX_LIST_LIMIT are clamped, which still returns every row.
    """
    text = (raw_limit or "").strip()
    if not (text.isascii() and text.isdigit()):
        return default
    value = int(text)
    return min(value, MAX_LIST_LIMIT) if value > 0 else default
