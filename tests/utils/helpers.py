"""Test helper functions for mocking the Supabase client."""

from contextlib import contextmanager
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock, patch

QUERY_METHODS = (
    "select", "insert", "update", "delete",
    "eq", "neq", "gte", "lte", "or_", "is_",
    "order", "limit",
)


def make_response(data: Optional[list] = None, count: Optional[int] = None) -> MagicMock:
    return MagicMock(data=data if data is not None else [], count=count)


def make_query(*responses: Any, error: Optional[Exception] = None) -> MagicMock:
    """Chainable postgrest query mock.

    Each ``execute()`` returns the next response (a list of rows or a ready
    response mock); ``error`` makes execute raise instead.
    """
    query = MagicMock()
    for method in QUERY_METHODS:
        getattr(query, method).return_value = query
    
    if error is not None:
        query.execute = AsyncMock(side_effect=error)
    elif responses:
        query.execute = AsyncMock(side_effect=[
            r if isinstance(r, MagicMock) else make_response(r) for r in responses
        ])
    else:
        query.execute = AsyncMock(return_value=make_response([]))
    return query


def make_client(tables: Optional[dict[str, MagicMock]] = None) -> MagicMock:
    """Client whose ``table(name)`` returns the query registered for name."""
    tables = tables or {}
    default = make_query()
    client = MagicMock()
    client.table.side_effect = lambda name: tables.get(name, default)
    return client


@contextmanager
def patch_supabase(module: str, client: MagicMock):
    """Patch SupabaseClient in a module so ``async with`` yields client."""
    with patch(f"{module}.SupabaseClient") as mock_client_class:
        mock_client_class.return_value.__aenter__.return_value = client
        mock_client_class.return_value.__aexit__.return_value = False
        yield mock_client_class
