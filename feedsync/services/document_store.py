"""Document store contract with in-memory and SQLAlchemy implementations."""

from __future__ import annotations

import copy
import uuid
from contextlib import AbstractContextManager
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Protocol, Tuple, Type

from sqlalchemy import inspect, select, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from feedsync.db.models import Article, Base


class StoreError(Exception):
    """Base document store error."""


class DuplicateKeyError(StoreError):
    """Insert rejected by a unique field."""


class StoreUnavailableError(StoreError):
    """The store cannot be reached at all; callers abort the whole run."""


class DocumentStore(Protocol):
    def ping(self) -> None: ...  # noqa: D401
    def find_by_field(self, collection: str, field: str, value: Any) -> Optional[Dict[str, Any]]: ...  # noqa: D401
    def insert(self, collection: str, fields: Mapping[str, Any]) -> str: ...  # noqa: D401
    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None: ...  # noqa: D401


class InMemoryDocumentStore:
    """Dict-backed store for tests/local runs; enforces unique fields like the DB does."""

    def __init__(self, unique_fields: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._unique: Dict[str, Tuple[str, ...]] = {
            name: tuple(fields) for name, fields in (unique_fields or {"articles": ("dedup_key",)}).items()
        }

    def ping(self) -> None:  # pragma: no cover - trivial
        return None

    def documents(self, collection: str) -> list[Dict[str, Any]]:
        return [copy.deepcopy(doc) for doc in self._collections.get(collection, {}).values()]

    def find_by_field(self, collection: str, field: str, value: Any) -> Optional[Dict[str, Any]]:
        for doc in self._collections.get(collection, {}).values():
            if doc.get(field) == value:
                return copy.deepcopy(doc)
        return None

    def insert(self, collection: str, fields: Mapping[str, Any]) -> str:
        docs = self._collections.setdefault(collection, {})
        for unique_field in self._unique.get(collection, ()):
            value = fields.get(unique_field)
            if any(doc.get(unique_field) == value for doc in docs.values()):
                raise DuplicateKeyError(f"{collection}.{unique_field} 중복: {value}")
        doc_id = uuid.uuid4().hex
        docs[doc_id] = {**copy.deepcopy(dict(fields)), "id": doc_id}
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        docs = self._collections.get(collection, {})
        if doc_id not in docs:
            raise StoreError(f"{collection}/{doc_id} 문서를 찾을 수 없습니다.")
        docs[doc_id].update(copy.deepcopy(dict(fields)))


SessionScopeFn = Callable[[], AbstractContextManager[Session]]

_DEFAULT_MODELS: Mapping[str, Type[Base]] = {"articles": Article}


class SqlDocumentStore:
    """SQLAlchemy-backed store. Each operation runs in its own short transaction,
    so a write is durable as soon as the call returns.
    """

    def __init__(self, session_scope: SessionScopeFn, models: Optional[Mapping[str, Type[Base]]] = None) -> None:
        self._session_scope = session_scope
        self._models = dict(models or _DEFAULT_MODELS)

    def _model(self, collection: str) -> Type[Base]:
        try:
            return self._models[collection]
        except KeyError:
            raise StoreError(f"알 수 없는 컬렉션: {collection}") from None

    def ping(self) -> None:
        try:
            with self._session_scope() as session:
                session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"저장소 연결 실패: {exc}") from exc

    def find_by_field(self, collection: str, field: str, value: Any) -> Optional[Dict[str, Any]]:
        model = self._model(collection)
        column = getattr(model, field, None)
        if column is None:
            raise StoreError(f"{collection}에 {field} 필드가 없습니다.")
        try:
            with self._session_scope() as session:
                entity = session.execute(select(model).where(column == value).limit(1)).scalars().first()
                return _to_dict(entity) if entity is not None else None
        except OperationalError as exc:
            raise StoreUnavailableError(f"저장소 조회 실패: {exc}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"저장소 조회 실패: {exc}") from exc

    def insert(self, collection: str, fields: Mapping[str, Any]) -> str:
        model = self._model(collection)
        try:
            with self._session_scope() as session:
                entity = model(**dict(fields))
                session.add(entity)
                session.flush()
                return str(entity.id)
        except IntegrityError as exc:
            raise DuplicateKeyError(f"{collection} 고유 제약 위반") from exc
        except OperationalError as exc:
            raise StoreUnavailableError(f"저장소 쓰기 실패: {exc}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"저장소 쓰기 실패: {exc}") from exc

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        model = self._model(collection)
        try:
            with self._session_scope() as session:
                entity = session.get(model, uuid.UUID(str(doc_id)))
                if entity is None:
                    raise StoreError(f"{collection}/{doc_id} 문서를 찾을 수 없습니다.")
                for key, value in fields.items():
                    setattr(entity, key, value)
        except OperationalError as exc:
            raise StoreUnavailableError(f"저장소 쓰기 실패: {exc}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"저장소 쓰기 실패: {exc}") from exc


def _to_dict(entity: Base) -> Dict[str, Any]:
    data = {attr.key: getattr(entity, attr.key) for attr in inspect(entity).mapper.column_attrs}
    data["id"] = str(data["id"])
    return data
