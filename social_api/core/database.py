import uuid
import logging
from typing import Optional

import httpx
from postgrest.exceptions import APIError

from social_api.core.errors import PersistenceFailure


logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique constraint violations.
UNIQUE_VIOLATION = "23505"


def is_uuid(value) -> bool:
    """Every id column is a Postgres UUID; anything else can never match a row."""
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


async def run_query(query, failure_message: Optional[str] = None):
    """
    Execute a PostgREST query built on the async Supabase client.

    Errors reported by PostgREST are re-raised as ``PersistenceFailure``
    carrying the SQLSTATE so callers can branch on constraint violations.
    Transport errors (connection refused, timeouts) become a
    ``PersistenceFailure`` without a code.
    """
    try:
        return await query.execute()
    except APIError as error:
        logger.error(f"postgrest_error code={error.code} message={error.message}")
        raise PersistenceFailure(
            failure_message or error.message or "Database error", code=error.code
        ) from error
    except httpx.HTTPError as error:
        logger.error(f"postgrest_unreachable error={error!r}")
        raise PersistenceFailure(failure_message or "Database unavailable") from error
