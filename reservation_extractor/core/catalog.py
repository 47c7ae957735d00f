"""Property catalog collaborators.

The pipeline only reads the catalog. Whatever owns properties (a database,
an API) implements PropertyCatalog; StaticPropertyCatalog serves tests and
the CLI, which loads it from a JSON file.
"""

import json
from pathlib import Path
from typing import Protocol, runtime_checkable

from reservation_extractor.pydantic_models import PropertyCatalogEntry


@runtime_checkable
class PropertyCatalog(Protocol):
    """Read-only source of known properties."""

    async def list_properties(self) -> list[PropertyCatalogEntry]:
        ...


class StaticPropertyCatalog:
    """In-memory catalog."""

    def __init__(self, entries: list[PropertyCatalogEntry] | None = None):
        self._entries = list(entries or [])

    async def list_properties(self) -> list[PropertyCatalogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def load_catalog(path: str | Path) -> StaticPropertyCatalog:
    """Load a catalog from JSON.

    Expected shape::

        [{"id": 7, "name": "Sete Rios", "aliases": ["7 Rios"]}, ...]

    A ``{"properties": [...]}`` envelope is accepted too.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("properties", [])
    entries = [PropertyCatalogEntry.model_validate(item) for item in data]
    return StaticPropertyCatalog(entries)
