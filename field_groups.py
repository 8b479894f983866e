"""Field-group organizer: one "SCF Fields" entry per custom field group."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List

from menu_organizer import MenuNode
from managed_selection import SETTINGS_CAPABILITY


FIELDS_ROOT_ID = "cdo-fields"
FIELDS_ROOT_POSITION = 58


@dataclass(frozen=True)
class FieldGroup:
    id: int
    title: str
    key: str = ""
    location: list = field(default_factory=list)

    @property
    def edit_path(self) -> str:
        return f"post.php?post={self.id}&action=edit"


def _int_id(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def field_group_from_dict(raw: Any) -> FieldGroup | None:
    """Accepts the host's field-group arrays (``ID``, ``title``, ``key``, ``location``)."""
    if not isinstance(raw, dict):
        return None
    group_id = _int_id(raw.get("ID", raw.get("id")))
    title = raw.get("title")
    if not group_id or not isinstance(title, str) or not title.strip():
        return None
    key = raw.get("key") if isinstance(raw.get("key"), str) else ""
    location = raw.get("location") if isinstance(raw.get("location"), list) else []
    return FieldGroup(id=group_id, title=title.strip(), key=key, location=location)


def coerce_field_groups(groups: Any) -> List[FieldGroup]:
    if not isinstance(groups, (list, tuple)):
        return []
    items: List[FieldGroup] = []
    for raw in groups:
        group = raw if isinstance(raw, FieldGroup) else field_group_from_dict(raw)
        if group is not None:
            items.append(group)
    return items


def fields_root_node() -> MenuNode:
    return MenuNode(
        id=FIELDS_ROOT_ID,
        label="SCF Fields",
        required_capability=SETTINGS_CAPABILITY,
        target="page:field_groups",
        kind="root",
        page_title="SCF Admin Organizer",
    )


def build_field_group_menu(groups: Any) -> List[MenuNode]:
    return [
        MenuNode(
            id=f"cdo-field-group-{group.id}",
            label=group.title,
            required_capability=SETTINGS_CAPABILITY,
            target=f"url:{group.edit_path}",
            parent=FIELDS_ROOT_ID,
            kind="field_group",
            page_title=group.title,
        )
        for group in coerce_field_groups(groups)
    ]


def format_location_rules(location: Any) -> str:
    """Rules within a group are AND-ed, groups are OR-ed."""
    if not isinstance(location, list):
        return "-"
    parts: List[str] = []
    for rule_group in location:
        if not isinstance(rule_group, list):
            continue
        group_parts = []
        for rule in rule_group:
            if not isinstance(rule, dict):
                continue
            if not rule.get("param") or not rule.get("operator") or "value" not in rule:
                continue
            group_parts.append(f"{rule['param']} {rule['operator']} {rule['value']}")
        if group_parts:
            parts.append(" & ".join(group_parts))
    if not parts:
        return "-"
    return " OR ".join(parts)
