"""Entity-type descriptors and the catalog helpers that feed the organizer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List

from cdo.keys import naive_singular, sanitize_key


logger = logging.getLogger("cdo.catalog")

CORE_ENTITY_TYPES = frozenset(
    {
        "post",
        "page",
        "attachment",
        "revision",
        "nav_menu_item",
        "custom_css",
        "customize_changeset",
        "oembed_cache",
        "user_request",
        "wp_block",
        "wp_template",
        "wp_template_part",
        "wp_global_styles",
        "wp_navigation",
        "wp_font_family",
        "wp_font_face",
    }
)
INTERNAL_PREFIX = "acf-"
DEFAULT_EDIT_CAPABILITY = "edit_posts"


@dataclass(frozen=True)
class TaxonomyDescriptor:
    slug: str
    label: str


@dataclass(frozen=True)
class EntityTypeDescriptor:
    slug: str
    plural_label: str
    singular_label: str
    menu_label: str
    edit_capability: str = DEFAULT_EDIT_CAPABILITY
    create_capability: str = DEFAULT_EDIT_CAPABILITY
    taxonomies: tuple[TaxonomyDescriptor, ...] = field(default_factory=tuple)
    is_core: bool = False
    is_internal: bool = False
    show_ui: bool = True

    @property
    def manageable(self) -> bool:
        return self.show_ui and not self.is_core and not self.is_internal

    @property
    def first_taxonomy(self) -> TaxonomyDescriptor | None:
        return self.taxonomies[0] if self.taxonomies else None


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    return ""


def make_entity_type(
    slug: str,
    plural_label: str | None = None,
    singular_label: str | None = None,
    menu_label: str | None = None,
    edit_capability: str | None = None,
    create_capability: str | None = None,
    taxonomies: Iterable[TaxonomyDescriptor] = (),
    builtin: bool = False,
    show_ui: bool = True,
) -> EntityTypeDescriptor:
    """Build a descriptor applying the label and capability fallbacks."""
    plural = _text(plural_label) or slug
    menu = _text(menu_label) or plural
    singular = _text(singular_label) or naive_singular(menu)
    edit_cap = _text(edit_capability) or DEFAULT_EDIT_CAPABILITY
    create_cap = _text(create_capability) or edit_cap
    return EntityTypeDescriptor(
        slug=slug,
        plural_label=plural,
        singular_label=singular,
        menu_label=menu,
        edit_capability=edit_cap,
        create_capability=create_cap,
        taxonomies=tuple(taxonomies),
        is_core=builtin or slug in CORE_ENTITY_TYPES,
        is_internal=slug.startswith(INTERNAL_PREFIX),
        show_ui=show_ui,
    )


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no", "off")
    return bool(value)


def _taxonomies_from_raw(raw: Any) -> List[TaxonomyDescriptor]:
    items: List[TaxonomyDescriptor] = []
    if not isinstance(raw, (list, tuple)):
        return items
    for tax in raw:
        if isinstance(tax, str) and tax:
            items.append(TaxonomyDescriptor(slug=tax, label=tax))
            continue
        if not isinstance(tax, dict):
            continue
        slug = _text(tax.get("slug") or tax.get("name"))
        if not slug:
            continue
        items.append(TaxonomyDescriptor(slug=slug, label=_text(tax.get("label")) or slug))
    return items


def entity_type_from_dict(raw: Any) -> EntityTypeDescriptor | None:
    """Coerce a host-style dict into a descriptor, or None when it has no slug.

    Accepts the flat keys used by this service (``plural_label`` ...) as well as
    the host's nested ``labels``/``cap`` objects (``labels.name``,
    ``labels.menu_name``, ``labels.singular_name``, ``cap.edit_posts``,
    ``cap.create_posts``).
    """
    if not isinstance(raw, dict):
        return None
    slug = sanitize_key(_text(raw.get("slug") or raw.get("name")))
    if not slug:
        return None
    labels = raw.get("labels") if isinstance(raw.get("labels"), dict) else {}
    caps = raw.get("cap") if isinstance(raw.get("cap"), dict) else {}
    return make_entity_type(
        slug,
        plural_label=raw.get("plural_label") or labels.get("name"),
        singular_label=raw.get("singular_label") or labels.get("singular_name"),
        menu_label=raw.get("menu_label") or labels.get("menu_name"),
        edit_capability=raw.get("edit_capability") or caps.get("edit_posts"),
        create_capability=raw.get("create_capability") or caps.get("create_posts"),
        taxonomies=_taxonomies_from_raw(raw.get("taxonomies")),
        builtin=bool(raw.get("is_core") or raw.get("_builtin")),
        show_ui=_flag(raw.get("show_ui", True)),
    )


def coerce_catalog(catalog: Any) -> List[EntityTypeDescriptor]:
    """Return the well-formed descriptors of a catalog, keeping catalog order."""
    if not isinstance(catalog, (list, tuple)):
        return []
    items: List[EntityTypeDescriptor] = []
    for entry in catalog:
        if isinstance(entry, EntityTypeDescriptor):
            items.append(entry)
            continue
        descriptor = entity_type_from_dict(entry)
        if descriptor is None:
            logger.info("catalog_entry_skipped type=%s", type(entry).__name__)
            continue
        items.append(descriptor)
    return items


def manageable_entity_types(catalog: Any) -> List[EntityTypeDescriptor]:
    """Types an administrator may pick on the settings form."""
    return [d for d in coerce_catalog(catalog) if d.manageable]
