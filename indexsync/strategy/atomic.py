import logging
from typing import Any

from indexsync.strategy.base import Strategy


class Atomic(Strategy):
    """
    Collect all notified objects (each object once) and send one bulk update per type
    when the strategy is left. Nested atomic strategies collect and send their own objects.
    """

    name = "atomic"

    def __init__(self, *args, **kargs):
        super().__init__(*args, **kargs)
        self._pending: dict[str, dict[int, Any]] = {}

    @property
    def pending(self) -> dict[str, list[Any]]:
        return {type_name: list(objects.values()) for type_name, objects in self._pending.items()}

    def update(self, type_name: str, objects: list[Any]) -> None:
        collected = self._pending.setdefault(type_name, {})
        for obj in objects:
            collected.setdefault(id(obj), obj)

    def leave(self) -> None:
        pending, self._pending = self._pending, {}
        for type_name, objects in pending.items():
            if objects:
                logging.debug(f"Atomic strategy: updating {len(objects)} {type_name} document(s)")
                self.client.bulk_update(type_name, list(objects.values()))
