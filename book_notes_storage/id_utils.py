"""ID generation and checking utilities for book notes storage.

Centralizes the id conventions so callers never test for the empty-string
"not persisted" marker directly.

Remote ids: 32-character uuid4 hex strings (in-memory and Cosmos repositories).
HTTP repositories return whatever id format their server assigns.
"""

from __future__ import annotations

import uuid
from typing import Any

from .exceptions import EntityValidationError


def generate_entity_id() -> str:
    """Generate a remote entity id."""
    return uuid.uuid4().hex


def is_cache_hit(entity: Any | None) -> bool:
    """Whether a local store lookup produced a usable entity.

    Treats None and entities carrying an empty id as misses.
    """
    return entity is not None and bool(getattr(entity, "id", ""))


def require_entity_id(entity: Any, operation: str) -> str:
    """Return the entity id, raising if the entity was never persisted.

    Raises EntityValidationError on an empty id.
    """
    entity_id = getattr(entity, "id", "")
    if not entity_id:
        raise EntityValidationError("id", f"{operation} requires a persisted entity")
    return entity_id


def validate_assigned_ids(ids: list[str], expected_count: int) -> list[str]:
    """Check ids returned by a batch insert before they are assigned.

    Raises EntityValidationError if the count differs or any id is empty.
    """
    if len(ids) != expected_count:
        raise EntityValidationError(
            "ids",
            f"expected {expected_count} ids from batch insert, got {len(ids)}",
        )
    for index, entity_id in enumerate(ids):
        if not entity_id:
            raise EntityValidationError("ids", f"empty id at position {index}")
    return ids
