"""Lay the organizer output into the host's top-level admin menu."""

from __future__ import annotations

from typing import Any, Dict, List

from entity_catalog import coerce_catalog
from field_groups import FIELDS_ROOT_POSITION, build_field_group_menu, coerce_field_groups, fields_root_node
from managed_selection import AuthContext
from menu_organizer import (
    ORDER_SELECTION,
    ROOT_POSITION,
    MenuNode,
    build_menu_tree,
    compute_suppressed_top_level_menus,
    root_node,
)


HOST_MENU_START_POSITION = 25


def _entry(node: MenuNode, position: int, children: List[MenuNode] | None = None, slug: str | None = None) -> dict:
    return {
        "id": node.id,
        "label": node.label,
        "required_capability": node.required_capability,
        "target": node.target,
        "position": position,
        "entity_type": slug,
        "children": [child.to_dict() for child in children or []],
    }


class AdminMenu:
    """Ordered top-level registrations, mirroring the host's admin_menu hook."""

    def __init__(self) -> None:
        self._entries: List[dict] = []

    def add(self, entry: dict) -> None:
        self._entries.append(entry)

    def remove_entity_types(self, slugs: set[str]) -> None:
        self._entries = [e for e in self._entries if e.get("entity_type") not in slugs]

    def entries(self) -> List[dict]:
        return sorted(self._entries, key=lambda e: e["position"])


def _host_entries(catalog: Any, auth: AuthContext) -> List[dict]:
    entries = []
    position = HOST_MENU_START_POSITION
    for descriptor in coerce_catalog(catalog):
        if not descriptor.manageable:
            continue
        node = MenuNode(
            id=f"edit.php?post_type={descriptor.slug}",
            label=descriptor.menu_label,
            required_capability=descriptor.edit_capability,
            target=f"url:edit.php?post_type={descriptor.slug}",
            kind="host",
        )
        if auth.can(node.required_capability):
            entries.append(_entry(node, position, slug=descriptor.slug))
        position += 1
    return entries


def compose_admin_menu(
    catalog: Any,
    selection: Any,
    auth: AuthContext,
    field_groups: Any = None,
    order: str = ORDER_SELECTION,
) -> Dict[str, Any]:
    menu = AdminMenu()
    for entry in _host_entries(catalog, auth):
        menu.add(entry)

    root = root_node()
    if auth.can(root.required_capability):
        menu.add(_entry(root, ROOT_POSITION, build_menu_tree(catalog, selection, auth, order=order)))

    groups = coerce_field_groups(field_groups)
    fields_root = fields_root_node()
    if groups and auth.can(fields_root.required_capability):
        children = [n for n in build_field_group_menu(groups) if auth.can(n.required_capability)]
        menu.add(_entry(fields_root, FIELDS_ROOT_POSITION, children))

    # Runs after every registration above so it sees the final menu.
    suppressed = compute_suppressed_top_level_menus(selection, catalog)
    menu.remove_entity_types(suppressed)
    return {"menu": menu.entries(), "suppressed": sorted(suppressed)}
