"""
Data models for catalog documents.

A catalog document is the JSON file kept in the GitHub repository, e.g.::

    {
        "apps": [
            {"app": {"uuid": "...", "name": "...", "downloads": 42, ...}},
            ...
        ]
    }

The records are exposed through typed accessors (``Record.uuid``,
``Record.downloads``) that read and write the underlying mapping in place,
so key order and every field this tool does not touch survive a
decode/encode cycle unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class DatasetKind(str, Enum):
    """The catalogs whose download counts are synchronized."""

    APPS = "apps"
    THEMES = "themes"


class DatasetSpec(BaseModel):
    """
    Where a dataset kind lives on both sides of the sync.

    Example:
        >>> spec = DatasetSpec(
        ...     label="Community Apps",
        ...     path="data/community_apps/community_apps.json",
        ...     collection_field="apps",
        ...     item_field="app",
        ...     store_collection="apps",
        ... )
    """

    label: str = Field(description="Human-readable name used in logs and commit messages")
    path: str = Field(description="Path of the JSON document inside the repository")
    collection_field: str = Field(description="Top-level field holding the entry list")
    item_field: str = Field(description="Field inside each entry holding the record")
    store_collection: str = Field(description="Backing-store collection with the counts")


class Record:
    """Typed view over one record mapping inside a catalog entry."""

    __slots__ = ("_data",)

    def __init__(self, data: dict[str, Any]) -> None:
        self._data = data

    @property
    def uuid(self) -> str:
        return self._data["uuid"]

    @property
    def downloads(self) -> int:
        return self._data.get("downloads", 0)

    @downloads.setter
    def downloads(self, value: int) -> None:
        self._data["downloads"] = value

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    def __repr__(self) -> str:
        return f"Record(uuid={self.uuid!r}, downloads={self.downloads!r})"


class Entry:
    """One element of the document's entry list, wrapping a single record."""

    __slots__ = ("_data", "_item_field")

    def __init__(self, data: dict[str, Any], item_field: str) -> None:
        self._data = data
        self._item_field = item_field

    @property
    def record(self) -> Record:
        return Record(self._data[self._item_field])

    @property
    def uuid(self) -> str:
        return self.record.uuid

    @property
    def downloads(self) -> int:
        return self.record.downloads


@dataclass
class CatalogDocument:
    """
    Decoded catalog document.

    Attributes:
        root: The decoded JSON root object (owned by this document)
        spec: Dataset spec describing where the entries live
    """

    root: dict[str, Any]
    spec: DatasetSpec

    @property
    def entries(self) -> list[Entry]:
        return [
            Entry(item, self.spec.item_field) for item in self.root[self.spec.collection_field]
        ]


@dataclass
class ReconciledDocument:
    """Result of reconciling a catalog document against a count index."""

    document: CatalogDocument
    matched: int = 0
    unmatched: list[str] = field(default_factory=list)

    @property
    def entries(self) -> list[Entry]:
        return self.document.entries


__all__ = [
    "DatasetKind",
    "DatasetSpec",
    "Record",
    "Entry",
    "CatalogDocument",
    "ReconciledDocument",
]
