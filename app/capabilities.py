from __future__ import annotations

from typing import Any

_SUBSCRIBER = {"read"}
_CONTRIBUTOR = _SUBSCRIBER | {"edit_posts", "delete_posts"}
_AUTHOR = _CONTRIBUTOR | {"publish_posts", "upload_files", "edit_published_posts"}
_EDITOR = _AUTHOR | {
    "edit_others_posts",
    "edit_pages",
    "publish_pages",
    "manage_categories",
    "moderate_comments",
}
_ADMINISTRATOR = _EDITOR | {
    "manage_options",
    "edit_theme_options",
    "activate_plugins",
    "list_users",
}

ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    "subscriber": frozenset(_SUBSCRIBER),
    "contributor": frozenset(_CONTRIBUTOR),
    "author": frozenset(_AUTHOR),
    "editor": frozenset(_EDITOR),
    "administrator": frozenset(_ADMINISTRATOR),
}


def actor_roles(actor: dict | None) -> list[str]:
    if not isinstance(actor, dict):
        return []
    roles: list[str] = []
    role = actor.get("role")
    if isinstance(role, str) and role:
        roles.append(role)
    extra = actor.get("roles")
    if isinstance(extra, list):
        roles.extend(r for r in extra if isinstance(r, str) and r)
    return roles


def actor_capabilities(actor: dict | None) -> set[str]:
    caps: set[str] = set()
    for role in actor_roles(actor):
        caps |= ROLE_CAPABILITIES.get(role, frozenset())
    explicit: Any = actor.get("capabilities") if isinstance(actor, dict) else None
    if isinstance(explicit, list):
        caps |= {c for c in explicit if isinstance(c, str)}
    elif isinstance(explicit, dict):
        # Host-style map; a False value revokes a role capability.
        for cap, granted in explicit.items():
            if granted:
                caps.add(cap)
            else:
                caps.discard(cap)
    return caps


def role_can(capability: str, actor: dict | None) -> bool:
    if not capability:
        return False
    return capability in actor_capabilities(actor)
