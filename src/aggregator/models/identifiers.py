#!/usr/bin/env python3
"""
Stable opaque identifiers.

A single generic identifier type parameterized by the entity kind it names.
Identifiers are derived deterministically from their inputs, so the same
article fetched twice gets the same id.
"""

import uuid
from dataclasses import dataclass
from typing import Generic, Type, TypeVar

K = TypeVar('K')

# Fixed namespace so ids are stable across processes and machines
_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, 'urn:article-aggregator')


@dataclass(frozen=True, order=True)
class StableId(Generic[K]):
    """Opaque identifier for an entity of kind K."""
    kind: str
    value: str

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"StableId({self.kind}:{self.value})"


def generate_stable_id(kind: Type[K], *parts: str) -> StableId[K]:
    """
    Generate the identifier for an entity of the given kind.

    Args:
        kind: Entity class the id belongs to
        parts: Values that identify the entity (e.g. source name and URL)

    Returns:
        Deterministic StableId; equal inputs always produce equal ids
    """
    if not parts:
        raise ValueError("generate_stable_id requires at least one identifying part")

    kind_name = kind.__name__
    name = '\x1f'.join((kind_name,) + tuple(parts))
    return StableId(kind=kind_name, value=str(uuid.uuid5(_ID_NAMESPACE, name)))
