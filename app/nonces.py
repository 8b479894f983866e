from __future__ import annotations

import base64
import hmac
import os

from cryptography.fernet import Fernet, InvalidToken


class NonceError(RuntimeError):
    pass


def _nonce_ttl() -> int:
    return int(os.getenv("CDO_NONCE_TTL_S", "86400"))


def _get_fernet() -> Fernet:
    key = os.getenv("APP_SECRET_KEY", "").strip()
    if not key:
        raise NonceError("APP_SECRET_KEY is not set")
    try:
        # Accept raw 32-byte base64 or 32-byte urlsafe b64 key
        if len(key) == 32:
            key = base64.urlsafe_b64encode(key.encode("utf-8")).decode("utf-8")
        return Fernet(key.encode("utf-8"))
    except Exception as exc:
        raise NonceError("Invalid APP_SECRET_KEY") from exc


def _actor_id(actor: dict | None) -> str:
    if isinstance(actor, dict) and actor.get("id"):
        return str(actor["id"])
    return "anonymous"


def create_nonce(action: str, actor: dict | None) -> str:
    payload = f"{action}|{_actor_id(actor)}"
    return _get_fernet().encrypt(payload.encode("utf-8")).decode("utf-8")


def verify_nonce(token: str | None, action: str, actor: dict | None) -> bool:
    """True when ``token`` was issued for this action and actor and has not expired."""
    if not token:
        return False
    fernet = _get_fernet()
    try:
        payload = fernet.decrypt(token.encode("utf-8"), ttl=_nonce_ttl()).decode("utf-8")
    except (InvalidToken, UnicodeError):
        return False
    expected = f"{action}|{_actor_id(actor)}"
    return hmac.compare_digest(payload.encode("utf-8"), expected.encode("utf-8"))
