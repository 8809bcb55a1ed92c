"""Shared Supabase query execution."""

import httpx
from supabase import PostgrestAPIError

from meal_assistant.errors import StoreQueryError, StoreUnavailableError

# PostgREST connection codes plus Postgres SQLSTATE classes for connection
# loss, resource exhaustion, shutdown and system errors.
_OUTAGE_CODE_PREFIXES = ("PGRST00", "08", "53", "57", "58", "XX")


def execute_query(query, action: str):  # type: ignore[no-untyped-def]
    """Run a Supabase query, reporting transport and server failures as an outage.

    Errors the store returns for the query itself (constraints, bad filters,
    missing columns) are raised as StoreQueryError instead.
    """
    try:
        return query.execute()
    except httpx.HTTPError as exc:
        raise StoreUnavailableError(f"Store unavailable ({action}): {exc}") from exc
    except PostgrestAPIError as exc:
        if is_outage(exc):
            raise StoreUnavailableError(
                f"Store unavailable ({action}): {exc.message}"
            ) from exc
        raise StoreQueryError(f"Store rejected {action}: {exc.message}") from exc


def is_outage(exc: PostgrestAPIError) -> bool:
    """Return true when the error means the store itself is failing."""
    code = str(exc.code or "")
    if not code:
        return True
    if len(code) == 3 and code.isdigit():
        return code.startswith("5")
    return code.startswith(_OUTAGE_CODE_PREFIXES)
