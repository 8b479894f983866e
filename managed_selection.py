"""Persisted selection of the entity types the organizer manages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from cdo.keys import sanitize_keys


logger = logging.getLogger("cdo.organizer")

OPTION_KEY = "managed_entity_types"
SETTINGS_CAPABILITY = "manage_options"
SAVE_NONCE_ACTION = "cdo_save_settings"


@dataclass
class AuthError(Exception):
    code: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"{self.code}: {self.message}"


@dataclass
class AuthContext:
    """The acting user plus the collaborators used to authorize them.

    ``can_fn`` is the host capability checker, ``verify_nonce`` checks an
    anti-forgery token for an action and this actor.
    """

    actor: dict | None
    can_fn: Callable[[str, dict | None], bool]
    nonce: str | None = None
    verify_nonce: Callable[[str | None, str, dict | None], bool] | None = None

    def can(self, capability: str) -> bool:
        try:
            return bool(self.can_fn(capability, self.actor))
        except Exception as exc:
            logger.warning("capability_check_failed capability=%s error=%s", capability, exc)
            return False

    def nonce_ok(self, action: str) -> bool:
        if self.verify_nonce is None or not self.nonce:
            return False
        try:
            return bool(self.verify_nonce(self.nonce, action, self.actor))
        except Exception as exc:
            logger.warning("nonce_check_failed action=%s error=%s", action, exc)
            return False


def normalize_selection(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    if not all(isinstance(item, str) for item in value):
        return ()
    return sanitize_keys(value)


def load_managed_selection(store) -> tuple[str, ...]:
    try:
        value = store.get_option(OPTION_KEY)
    except Exception as exc:
        logger.warning("selection_load_failed error=%s", exc)
        return ()
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        logger.info("selection_malformed type=%s", type(value).__name__)
        return ()
    return normalize_selection(value)


def save_managed_selection(store, candidate_slugs: Iterable[Any], auth: AuthContext) -> tuple[str, ...]:
    """Replace the stored selection; raises AuthError without writing on a failed check."""
    if not auth.can(SETTINGS_CAPABILITY):
        raise AuthError("AUTH_FORBIDDEN", f"missing capability {SETTINGS_CAPABILITY}")
    if not auth.nonce_ok(SAVE_NONCE_ACTION):
        raise AuthError("AUTH_BAD_NONCE", "missing or invalid anti-forgery token")
    if isinstance(candidate_slugs, (list, tuple)):
        candidates = [slug for slug in candidate_slugs if isinstance(slug, str)]
    else:
        candidates = []
    selection = normalize_selection(candidates)
    store.set_option(OPTION_KEY, list(selection))
    actor_id = (auth.actor or {}).get("id")
    logger.info("selection_saved count=%s actor=%s", len(selection), actor_id)
    return selection
