"""Record store over a SQLAlchemy session and the ORM models."""

import logging
from typing import Any, Mapping, Sequence

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quiz_gamification.core.errors import RecordStoreError
from quiz_gamification.db.models import MODELS
from quiz_gamification.store.base import Record

logger = logging.getLogger(__name__)


def _as_dict(obj: Any) -> Record:
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


class SqlRecordStore:
    """Each call commits on its own; nothing spans two calls."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _model(self, collection: str):
        try:
            return MODELS[collection]
        except KeyError:
            raise RecordStoreError(f"Unknown collection '{collection}'", collection=collection)

    def get(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        order_by: Sequence[tuple[str, bool]] | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        model = self._model(collection)
        try:
            query = self._db.query(model)
            for field, value in (filters or {}).items():
                query = query.filter(getattr(model, field) == value)
            for field, descending in order_by or ():
                column = getattr(model, field)
                query = query.order_by(column.desc() if descending else column.asc())
            if limit is not None:
                query = query.limit(limit)
            return [_as_dict(row) for row in query.all()]
        except (SQLAlchemyError, AttributeError) as e:
            self._db.rollback()
            raise RecordStoreError(f"get {collection} failed: {e}", collection=collection) from e

    def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        model = self._model(collection)
        try:
            obj = model(**record)
            self._db.add(obj)
            self._db.commit()
            self._db.refresh(obj)
            return _as_dict(obj)
        except (SQLAlchemyError, TypeError) as e:
            self._db.rollback()
            raise RecordStoreError(f"insert {collection} failed: {e}", collection=collection) from e

    def patch(self, collection: str, record_id: Any, changes: Mapping[str, Any]) -> None:
        model = self._model(collection)
        try:
            obj = self._db.get(model, record_id)
            if obj is None:
                raise RecordStoreError(
                    f"patch {collection}: no record with id={record_id}",
                    collection=collection,
                )
            for field, value in changes.items():
                if not hasattr(model, field):
                    raise RecordStoreError(
                        f"patch {collection}: unknown field '{field}'",
                        collection=collection,
                    )
                setattr(obj, field, value)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            raise RecordStoreError(f"patch {collection} failed: {e}", collection=collection) from e
