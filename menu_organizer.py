"""Consolidated "Custom Data" menu built from the managed entity types.

The organizer only returns data. Each node's ``target`` is either
``page:<name>`` (a page this service renders) or ``url:<path>`` (a host
admin screen the caller redirects to), the same prefix scheme the
diagnostics use for app home targets.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List
from urllib.parse import urlencode

from cdo.keys import sanitize_keys
from entity_catalog import EntityTypeDescriptor, coerce_catalog
from managed_selection import SETTINGS_CAPABILITY, AuthContext


ROOT_ID = "cdo-main"
SETTINGS_ID = "cdo-settings"
ROOT_CAPABILITY = "edit_posts"
CATEGORIES_CAPABILITY = "manage_categories"
ROOT_POSITION = 55
ORDER_SELECTION = "selection"
ORDER_LABEL = "label"


@dataclass(frozen=True)
class MenuNode:
    id: str
    label: str
    required_capability: str
    target: str
    parent: str | None = None
    group: str | None = None
    kind: str = "page"
    page_title: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def parse_target(target: str) -> tuple[str, str] | None:
    if not isinstance(target, str):
        return None
    if target.startswith("page:"):
        return ("page", target[5:])
    if target.startswith("url:"):
        return ("url", target[4:])
    return None


def _url(path: str, **params: str) -> str:
    return f"url:{path}?{urlencode(params)}"


def root_node() -> MenuNode:
    return MenuNode(
        id=ROOT_ID,
        label="Custom Data",
        required_capability=ROOT_CAPABILITY,
        target="page:overview",
        kind="root",
        page_title="Custom Data",
    )


def _overview_node() -> MenuNode:
    return MenuNode(
        id=ROOT_ID,
        label="Overview",
        required_capability=ROOT_CAPABILITY,
        target="page:overview",
        parent=ROOT_ID,
        kind="overview",
        page_title="Overview",
    )


def _settings_node() -> MenuNode:
    return MenuNode(
        id=SETTINGS_ID,
        label="Settings",
        required_capability=SETTINGS_CAPABILITY,
        target="page:settings",
        parent=ROOT_ID,
        kind="settings",
        page_title="Custom Data Settings",
    )


def managed_descriptors(catalog: Any, selection: Any) -> List[EntityTypeDescriptor]:
    """Selected, resolvable and manageable descriptors in selection order."""
    if not isinstance(selection, (list, tuple, set, frozenset)):
        return []
    if isinstance(selection, (set, frozenset)):
        selection = sorted(s for s in selection if isinstance(s, str))
    by_slug: Dict[str, EntityTypeDescriptor] = {}
    for descriptor in coerce_catalog(catalog):
        by_slug.setdefault(descriptor.slug, descriptor)
    items: List[EntityTypeDescriptor] = []
    for slug in sanitize_keys(selection):
        descriptor = by_slug.get(slug)
        if descriptor is None or not descriptor.manageable:
            continue
        items.append(descriptor)
    return items


def entity_group_nodes(descriptor: EntityTypeDescriptor) -> List[MenuNode]:
    """View, create and (with a taxonomy) categories leaves for one type."""
    slug = descriptor.slug
    nodes = [
        MenuNode(
            id=f"cdo-view-{slug}",
            label=descriptor.menu_label,
            required_capability=descriptor.edit_capability,
            target=_url("edit.php", post_type=slug),
            parent=ROOT_ID,
            group=slug,
            kind="view",
            page_title=f"View All {descriptor.plural_label}",
        ),
        MenuNode(
            id=f"cdo-add-{slug}",
            label=f"Add {descriptor.singular_label or descriptor.plural_label}",
            required_capability=descriptor.create_capability,
            target=_url("post-new.php", post_type=slug),
            parent=ROOT_ID,
            group=slug,
            kind="create",
            page_title=f"Add {descriptor.singular_label or descriptor.plural_label}",
        ),
    ]
    taxonomy = descriptor.first_taxonomy
    if taxonomy is not None:
        nodes.append(
            MenuNode(
                id=f"cdo-tax-{slug}",
                label="Categories",
                required_capability=CATEGORIES_CAPABILITY,
                target=_url("edit-tags.php", taxonomy=taxonomy.slug, post_type=slug),
                parent=ROOT_ID,
                group=slug,
                kind="taxonomy",
                page_title=f"Categories ({descriptor.menu_label})",
            )
        )
    return nodes


def build_menu_tree(
    catalog: Any,
    selection: Any,
    auth: AuthContext | None = None,
    order: str = ORDER_SELECTION,
) -> List[MenuNode]:
    """Overview and settings nodes followed by each managed type's leaves.

    With ``auth`` the nodes the actor may not open are left out.
    """
    descriptors = managed_descriptors(catalog, selection)
    if order == ORDER_LABEL:
        descriptors = sorted(descriptors, key=lambda d: d.menu_label.lower())
    nodes = [_overview_node(), _settings_node()]
    for descriptor in descriptors:
        nodes.extend(entity_group_nodes(descriptor))
    if auth is not None:
        nodes = [node for node in nodes if auth.can(node.required_capability)]
    return nodes


def compute_suppressed_top_level_menus(selection: Any, catalog: Any) -> set[str]:
    """Slugs whose own top-level entry the consolidated menu replaces."""
    return {descriptor.slug for descriptor in managed_descriptors(catalog, selection)}


def find_node(nodes: Iterable[MenuNode], node_id: str) -> MenuNode | None:
    for node in nodes:
        if node.id == node_id:
            return node
    return None
