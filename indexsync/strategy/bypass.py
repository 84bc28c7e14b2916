from typing import Any

from indexsync.strategy.base import Strategy


class Bypass(Strategy):
    """Ignore all notifications: the index is not updated at all"""

    name = "bypass"

    def update(self, type_name: str, objects: list[Any]) -> None:
        pass
