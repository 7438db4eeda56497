"""Weak per-device respondent token.

The token only deduplicates honest repeat submissions from one device. It is
lost when storage is cleared and never leaves the device except as the
`respondent_id` of a submitted response.
"""
import logging
import uuid
from typing import Optional

from survey_client.errors import StorageUnavailable
from survey_client.storage import LocalStorage

logger = logging.getLogger(__name__)

STORAGE_KEY = "survey_respondent_id"
PREFIX = "respondent_"


def new_respondent_id() -> str:
    return PREFIX + uuid.uuid4().hex


class RespondentIdentityProvider:
    def __init__(self, storage: Optional[LocalStorage] = None):
        self._storage = storage

    @classmethod
    def from_settings(cls) -> "RespondentIdentityProvider":
        """Provider over the configured storage, or a non-persisting one if it cannot be opened."""
        try:
            return cls(LocalStorage())
        except StorageUnavailable as exc:
            logger.warning("Respondent id will not persist: %s", exc.message)
            return cls(None)

    @property
    def persistent(self) -> bool:
        return self._storage is not None

    def get_or_create_respondent_id(self) -> str:
        """Return the stored respondent id, creating it on first use.

        Without usable storage every call returns a fresh id, so duplicate
        detection degrades to nothing across reloads.
        """
        if self._storage is None:
            return new_respondent_id()
        try:
            existing = self._storage.get_item(STORAGE_KEY)
            if existing:
                return existing
            respondent_id = new_respondent_id()
            self._storage.set_item(STORAGE_KEY, respondent_id)
            return respondent_id
        except StorageUnavailable as exc:
            logger.warning("Falling back to a non-persisted respondent id: %s", exc.message)
            return new_respondent_id()
