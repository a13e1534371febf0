"""Data models for scanned menus and the scan history."""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def _require_object(data, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


@dataclass
class Dish:
    id: str
    name: str
    description: str = ""
    category: str = ""
    image_url: str | None = None  # data URI
    is_generating: bool = False
    error: str | None = None  # FILTERED / BUSY / FAILED

    def to_dict(self) -> dict:
        # is_generating / error are view state and never persisted
        d = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
        }
        if self.image_url:
            d["imageUrl"] = self.image_url
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Dish:
        _require_object(data, "dish")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=data.get("description", ""),
            category=data.get("category", ""),
            image_url=data.get("imageUrl"),
        )


@dataclass
class ScanResult:
    dishes: list[Dish] = field(default_factory=list)
    cafe_name: str | None = None
    timestamp: int | None = None  # epoch ms

    def find(self, dish_id: str) -> Dish | None:
        for dish in self.dishes:
            if dish.id == dish_id:
                return dish
        return None

    def snapshot(self) -> ScanResult:
        """Return an independent deep copy of this result."""
        return copy.deepcopy(self)

    def display(self) -> str:
        """Return a human-readable listing of the dishes."""
        lines = [
            f"🍽  {self.cafe_name or 'Untitled Cafe'} — {len(self.dishes)} items found",
            "",
        ]
        for n, dish in enumerate(self.dishes, start=1):
            if dish.is_generating:
                status = "generating..."
            elif dish.error:
                status = dish.error
            elif dish.image_url:
                status = "visual ready"
            else:
                status = "no visual"
            lines.append(f"  {n:>2}. {dish.name}  [{dish.category}]  ({status})")
            if dish.description:
                lines.append(f"      {dish.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        d: dict = {"dishes": [dish.to_dict() for dish in self.dishes]}
        if self.cafe_name:
            d["cafeName"] = self.cafe_name
        if self.timestamp is not None:
            d["timestamp"] = self.timestamp
        return d

    @classmethod
    def from_dict(cls, data: dict) -> ScanResult:
        _require_object(data, "scan result")
        return cls(
            dishes=[Dish.from_dict(d) for d in data.get("dishes", [])],
            cafe_name=data.get("cafeName"),
            timestamp=data.get("timestamp"),
        )


@dataclass
class HistoryItem:
    id: str
    timestamp: int  # epoch ms
    result: ScanResult

    @classmethod
    def from_result(cls, result: ScanResult) -> HistoryItem:
        """Create a history entry owning a copy of *result*."""
        ts = now_ms()
        snapshot = result.snapshot()
        snapshot.timestamp = ts
        for dish in snapshot.dishes:
            dish.is_generating = False
            dish.error = None
        item_id = f"hist-{ts}-{uuid.uuid4().hex[:6]}"
        return cls(id=item_id, timestamp=ts, result=snapshot)

    @property
    def title(self) -> str:
        return self.result.cafe_name or "Untitled Cafe"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "result": self.result.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> HistoryItem:
        _require_object(data, "history item")
        return cls(
            id=str(data["id"]),
            timestamp=int(data["timestamp"]),
            result=ScanResult.from_dict(data["result"]),
        )
