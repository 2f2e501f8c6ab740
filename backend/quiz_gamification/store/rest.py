"""Record store over the Supabase PostgREST API (singleton)."""

import json
import logging
from datetime import date, datetime
from typing import Any, Mapping, Sequence

import httpx

from quiz_gamification.config import settings
from quiz_gamification.core.errors import RecordStoreError
from quiz_gamification.store.base import Record

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "eq.true" if value else "eq.false"
    if value is None:
        return "is.null"
    return f"eq.{_json_default(value)}"


class PostgRestRecordStore:
    """Thin wrapper around ``/rest/v1/{collection}`` with the service-role key."""

    def __init__(
        self,
        base_url: str = settings.SUPABASE_URL,
        api_key: str = settings.SUPABASE_SERVICE_ROLE_KEY,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base = base_url.rstrip("/")
        self._http = httpx.Client(
            base_url=f"{self._base}/rest/v1",
            timeout=settings.STORE_TIMEOUT_SECONDS,
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    def _send(self, method: str, collection: str, **kwargs: Any) -> httpx.Response:
        try:
            r = self._http.request(method, f"/{collection}", **kwargs)
            r.raise_for_status()
            return r
        except httpx.HTTPStatusError as e:
            raise RecordStoreError(
                f"{method} {collection} returned {e.response.status_code}: {e.response.text}",
                collection=collection,
            ) from e
        except httpx.HTTPError as e:
            raise RecordStoreError(f"{method} {collection} failed: {e}", collection=collection) from e

    # ── get ───────────────────────────────────────────────────────────────

    def get(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        order_by: Sequence[tuple[str, bool]] | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        params: dict[str, Any] = {"select": "*"}
        for field, value in (filters or {}).items():
            params[field] = _filter_value(value)
        if order_by:
            params["order"] = ",".join(
                f"{field}.{'desc' if descending else 'asc'}" for field, descending in order_by
            )
        if limit is not None:
            params["limit"] = limit
        return self._send("GET", collection, params=params).json()

    # ── insert ────────────────────────────────────────────────────────────

    def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        r = self._send(
            "POST",
            collection,
            content=json.dumps(dict(record), default=_json_default),
            headers={"Prefer": "return=representation"},
        )
        rows = r.json()
        if not rows or "id" not in rows[0]:
            raise RecordStoreError(f"insert {collection} returned no id", collection=collection)
        return rows[0]

    # ── patch ─────────────────────────────────────────────────────────────

    def patch(self, collection: str, record_id: Any, changes: Mapping[str, Any]) -> None:
        self._send(
            "PATCH",
            collection,
            params={"id": _filter_value(record_id)},
            content=json.dumps(dict(changes), default=_json_default),
        )

    def close(self) -> None:
        self._http.close()


# ── singleton accessor ────────────────────────────────────────────────────────

_instance: PostgRestRecordStore | None = None


def get_rest_store() -> PostgRestRecordStore:
    global _instance
    if _instance is None:
        _instance = PostgRestRecordStore()
        logger.info("PostgREST store initialised → %s", _instance._base)
    return _instance
