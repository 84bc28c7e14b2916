"""
Base class for update strategies.

A strategy decides what happens to the objects it is notified about: nothing (bypass),
an immediate update (urgent), or a combined update when the strategy is left (atomic).
Every strategy instance is one frame on a StrategyStack and is used only once:
after it has been left it refuses further notifications.
"""
import logging
from typing import Any

from indexsync.client import IndexClient
from indexsync.errors import IndexSyncError


class Strategy:
    name: str = ""

    def __init__(self, client: IndexClient):
        self.client = client
        self.closed = False

    def __repr__(self):
        return f"<{self.__class__.__name__} strategy{' (closed)' if self.closed else ''}>"

    def notify(self, type_name: str, objects: Any) -> None:
        if self.closed:
            raise IndexSyncError(f"The {self.name} strategy was already left, it can't be notified anymore")
        if isinstance(objects, (list, tuple, set, frozenset)):
            objects = list(objects)
        else:
            objects = [objects]
        self.update(type_name, objects)

    def close(self) -> None:
        """Leave this strategy. Pending updates are sent (once, even if sending fails)"""
        if self.closed:
            return
        self.closed = True
        logging.debug(f"Leaving {self.name} strategy")
        self.leave()

    def update(self, type_name: str, objects: list[Any]) -> None:
        raise NotImplementedError()

    def leave(self) -> None:
        pass
