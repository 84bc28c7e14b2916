from typing import Any

import pytest

from indexsync.config import get_settings
from indexsync.fields import Field
from indexsync.strategy import StrategyStack, set_stack
from indexsync.types import define_type, unregister_type


class RecordingClient:
    """Index client that remembers the requests it was asked to send, in order"""

    def __init__(self):
        self.requests: list[tuple[str, str, Any]] = []

    def single_update(self, type_name, obj):
        self.requests.append(("single", type_name, obj))

    def bulk_update(self, type_name, objects):
        self.requests.append(("bulk", type_name, list(objects)))


class FailingClient(RecordingClient):
    def single_update(self, type_name, obj):
        super().single_update(type_name, obj)
        raise ConnectionError("elastic is down")

    def bulk_update(self, type_name, objects):
        super().bulk_update(type_name, objects)
        raise ConnectionError("elastic is down")


@pytest.fixture()
def client():
    return RecordingClient()


@pytest.fixture()
def failing_client():
    return FailingClient()


@pytest.fixture()
def stack(client):
    return StrategyStack(client=client, base="urgent")


@pytest.fixture()
def context_stack(stack):
    """Use the test stack as the strategy stack of the current context"""
    set_stack(stack)
    yield stack
    set_stack(None)


@pytest.fixture()
def settings():
    settings = get_settings()
    old_settings = settings.model_dump()
    yield settings
    for k, v in old_settings.items():
        setattr(settings, k, v)


@pytest.fixture()
def city_type():
    doc_type = define_type(
        "unittest_geo",
        "city",
        Field("name", type="keyword"),
        Field("population", type="integer"),
        id="slug",
        delete_if=lambda city: getattr(city, "deleted", False),
    )
    yield doc_type
    unregister_type(doc_type.key)
