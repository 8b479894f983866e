"""DB-backed stores for options, entity types and field groups."""

from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from typing import Any

from app.db import fetch_all, fetch_one, get_conn
from entity_catalog import EntityTypeDescriptor, coerce_catalog
from field_groups import FieldGroup, coerce_field_groups, field_group_from_dict

logger = logging.getLogger("cdo.stores")

_ORG_ID: ContextVar[str] = ContextVar("org_id", default="default")


def _json_dumps(value: object) -> str:
    return json.dumps(value, default=str)


def _ensure_json(value):
    if isinstance(value, str):
        return json.loads(value)
    return value


def get_org_id() -> str:
    return _ORG_ID.get()


def set_org_id(value: str):
    return _ORG_ID.set(value)


def reset_org_id(token):
    _ORG_ID.reset(token)


class DbOptionStore:
    def get_option(self, name: str) -> Any:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                """
                select value from options where org_id=%s and name=%s
                """,
                [get_org_id(), name],
                query_name="options.get",
            )
        if not row:
            return None
        try:
            return _ensure_json(row.get("value"))
        except ValueError:
            logger.warning("option_value_invalid name=%s", name)
            return None

    def set_option(self, name: str, value: Any) -> None:
        # Single upsert: concurrent saves resolve last-write-wins.
        with get_conn() as conn:
            fetch_one(
                conn,
                """
                insert into options (org_id, name, value, updated_at)
                values (%s, %s, %s::jsonb, now())
                on conflict (org_id, name)
                do update set value=excluded.value, updated_at=now()
                returning name
                """,
                [get_org_id(), name, _json_dumps(value)],
                query_name="options.upsert",
            )


class DbEntityCatalog:
    def list_entity_types(self) -> list[EntityTypeDescriptor]:
        with get_conn() as conn:
            rows = fetch_all(
                conn,
                """
                select slug, definition
                from entity_types
                where org_id=%s
                order by position asc, slug asc
                """,
                [get_org_id()],
                query_name="entity_types.list",
            )
        entries = []
        for row in rows:
            try:
                definition = _ensure_json(row.get("definition")) or {}
            except ValueError:
                continue
            if isinstance(definition, dict):
                entries.append({**definition, "slug": row.get("slug")})
        return coerce_catalog(entries)


class DbFieldGroupStore:
    def list_field_groups(self) -> list[FieldGroup]:
        with get_conn() as conn:
            rows = fetch_all(
                conn,
                """
                select id, title, key, location
                from field_groups
                where org_id=%s
                order by menu_order asc, title asc
                """,
                [get_org_id()],
                query_name="field_groups.list",
            )
        return coerce_field_groups([self._row_to_raw(r) for r in rows])

    def get(self, group_id: int) -> FieldGroup | None:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                """
                select id, title, key, location
                from field_groups
                where org_id=%s and id=%s
                """,
                [get_org_id(), group_id],
                query_name="field_groups.get",
            )
        if not row:
            return None
        return field_group_from_dict(self._row_to_raw(row))

    @staticmethod
    def _row_to_raw(row: dict) -> dict:
        try:
            location = _ensure_json(row.get("location"))
        except ValueError:
            location = []
        return {"ID": row.get("id"), "title": row.get("title"), "key": row.get("key"), "location": location}
