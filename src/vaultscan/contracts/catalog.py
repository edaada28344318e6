from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from ..core.errors import ConfigurationError


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    version: int
    file: str


def schemas_root() -> Path:
    return Path(__file__).resolve().parent / "schemas"


def catalog_path() -> Path:
    return schemas_root() / "catalog.json"


@lru_cache(maxsize=1)
def load_catalog() -> dict[str, CatalogEntry]:
    raw = json.loads(catalog_path().read_text(encoding="utf-8"))
    entries: dict[str, CatalogEntry] = {}
    for row in raw.get("schemas", []):
        entry = CatalogEntry(name=row["name"], version=int(row["version"]), file=row["file"])
        entries[entry.name] = entry
    return entries


def schema_path_for(schema_name: str) -> Path:
    entry = load_catalog().get(schema_name)
    if entry is None:
        raise ConfigurationError(f"unknown schema: {schema_name}")
    return schemas_root() / entry.file


@lru_cache(maxsize=None)
def load_schema(schema_name: str) -> dict[str, object]:
    return json.loads(schema_path_for(schema_name).read_text(encoding="utf-8"))


__all__ = ["CatalogEntry", "catalog_path", "load_catalog", "load_schema", "schema_path_for", "schemas_root"]
