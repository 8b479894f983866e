"""In-memory option, catalog and field-group stores."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from entity_catalog import EntityTypeDescriptor, coerce_catalog
from field_groups import FieldGroup, coerce_field_groups


logger = logging.getLogger("cdo.stores")


class MemoryOptionStore:
    def __init__(self, initial: Dict[str, Any] | None = None) -> None:
        self._options: Dict[str, Any] = copy.deepcopy(initial or {})

    def get_option(self, name: str) -> Any:
        value = self._options.get(name)
        return copy.deepcopy(value)

    def set_option(self, name: str, value: Any) -> None:
        self._options[name] = copy.deepcopy(value)


class MemoryEntityCatalog:
    def __init__(self, entries: List[Any] | None = None) -> None:
        self._types: Dict[str, EntityTypeDescriptor] = {}
        for descriptor in coerce_catalog(entries or []):
            self.register(descriptor)

    def register(self, descriptor: EntityTypeDescriptor) -> None:
        self._types[descriptor.slug] = descriptor

    def list_entity_types(self) -> list[EntityTypeDescriptor]:
        return list(self._types.values())


class MemoryFieldGroupStore:
    def __init__(self, groups: List[Any] | None = None) -> None:
        self._groups: Dict[int, FieldGroup] = {}
        for group in coerce_field_groups(groups or []):
            self.add(group)

    def add(self, group: FieldGroup) -> None:
        self._groups[group.id] = group

    def get(self, group_id: int) -> FieldGroup | None:
        return self._groups.get(group_id)

    def list_field_groups(self) -> list[FieldGroup]:
        return list(self._groups.values())


def load_seed_file(path: str | Path) -> dict:
    """Read ``{"entity_types": [...], "field_groups": [...]}`` seed data.

    A missing or unreadable file yields empty lists.
    """
    seed_path = Path(path)
    if not seed_path.exists():
        logger.warning("seed_missing path=%s", seed_path)
        return {"entity_types": [], "field_groups": []}
    try:
        data = json.loads(seed_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("seed_unreadable path=%s error=%s", seed_path, exc)
        return {"entity_types": [], "field_groups": []}
    if not isinstance(data, dict):
        return {"entity_types": [], "field_groups": []}
    entity_types = data.get("entity_types")
    field_groups = data.get("field_groups")
    return {
        "entity_types": entity_types if isinstance(entity_types, list) else [],
        "field_groups": field_groups if isinstance(field_groups, list) else [],
    }
