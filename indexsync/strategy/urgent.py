from typing import Any

from indexsync.strategy.base import Strategy


class Urgent(Strategy):
    """
    Update the index right away: every notification results in one request,
    a single document update for one object or a bulk update for more.
    Errors from the index client are raised to the notifier.
    """

    name = "urgent"

    def update(self, type_name: str, objects: list[Any]) -> None:
        if len(objects) == 1:
            self.client.single_update(type_name, objects[0])
        elif objects:
            self.client.bulk_update(type_name, objects)
