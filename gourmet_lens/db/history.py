"""Bounded, newest-first scan history persisted under a single key."""

from __future__ import annotations

import json
import logging

from ..models import HistoryItem
from .backends import KeyValueBackend

logger = logging.getLogger(__name__)

STORAGE_KEY = "gourmet_lens_history"
MAX_HISTORY = 10


class HistoryStore:
    """Holds up to ``MAX_HISTORY`` scan snapshots, newest first.

    Every mutation writes the whole list back to the backend.
    """

    def __init__(self, backend: KeyValueBackend, key: str = STORAGE_KEY) -> None:
        self._backend = backend
        self._key = key
        self._items: list[HistoryItem] = []

    @property
    def items(self) -> list[HistoryItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> HistoryItem | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def load(self) -> list[HistoryItem]:
        """Read the persisted list; unreadable data counts as no history."""
        raw = self._backend.get(self._key)
        self._items = []
        if not raw:
            return self.items

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            items = [HistoryItem.from_dict(d) for d in data]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable history: %s", e)
            return self.items

        self._items = items[:MAX_HISTORY]
        return self.items

    def append(self, item: HistoryItem) -> None:
        self._items = [item, *self._items][:MAX_HISTORY]
        self._persist()

    def update_dish_image(self, dish_id: str, image_url: str) -> int:
        """Set the image of every stored dish with *dish_id*.

        Returns:
            Number of dishes patched.
        """
        patched = 0
        for item in self._items:
            for dish in item.result.dishes:
                if dish.id == dish_id:
                    dish.image_url = image_url
                    patched += 1
        self._persist()
        return patched

    def clear(self) -> None:
        self._items = []
        self._backend.delete(self._key)

    def _persist(self) -> None:
        payload = json.dumps(
            [item.to_dict() for item in self._items], ensure_ascii=False
        )
        self._backend.set(self._key, payload)
