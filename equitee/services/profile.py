"""Locally persisted user profile collected by the sign-up wizards."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from equitee.services.storage import USER_PROFILE_KEY, KeyValueStorage, read_json, write_json

LOGGER = logging.getLogger(__name__)


class ProfileStore:
    """Read, merge and clear the profile stored under ``equitee-user-profile``."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def load(self) -> dict[str, Any]:
        stored = read_json(self._storage, USER_PROFILE_KEY)
        return dict(stored) if isinstance(stored, dict) else {}

    def save(self, updates: Mapping[str, Any]) -> dict[str, Any]:
        """Shallow-merge ``updates`` into the stored profile and return the result."""

        profile = self.load()
        profile.update(updates)
        write_json(self._storage, USER_PROFILE_KEY, profile)
        LOGGER.info(
            "User profile saved",
            extra={"event": "profile.saved", "fields": sorted(updates)},
        )
        return profile

    def clear(self) -> None:
        self._storage.remove_item(USER_PROFILE_KEY)
