"""Durable key/value storage scoped to an origin.

Plays the part of the browser's local storage: values survive restarts and
are only visible to callers using the same origin.
"""
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from survey_client.config import get_settings
from survey_client.db import Base, make_engine, make_session_factory
from survey_client.errors import StorageUnavailable
from survey_client.models import StoredItem


class LocalStorage:
    def __init__(self, origin: Optional[str] = None, url: Optional[str] = None, engine=None):
        settings = get_settings()
        self.origin = origin or settings.public_origin
        try:
            self.engine = engine if engine is not None else make_engine(url or settings.storage_url)
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Local storage is unavailable: {exc}") from exc
        self._session_factory = make_session_factory(self.engine)

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as db:
                return db.execute(
                    select(StoredItem.value).where(StoredItem.origin == self.origin, StoredItem.key == key)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Could not read '{key}': {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as db:
                row = db.execute(
                    select(StoredItem).where(StoredItem.origin == self.origin, StoredItem.key == key)
                ).scalar_one_or_none()
                if row:
                    row.value = value
                else:
                    db.add(StoredItem(origin=self.origin, key=key, value=value))
                db.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Could not write '{key}': {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            with self._session_factory() as db:
                db.execute(delete(StoredItem).where(StoredItem.origin == self.origin, StoredItem.key == key))
                db.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Could not remove '{key}': {exc}") from exc

    def clear(self) -> None:
        """Drop every value stored for this origin."""
        try:
            with self._session_factory() as db:
                db.execute(delete(StoredItem).where(StoredItem.origin == self.origin))
                db.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Could not clear storage: {exc}") from exc
