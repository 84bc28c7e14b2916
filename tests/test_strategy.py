import asyncio
import threading

import pytest

from indexsync.config import StrategyName
from indexsync.errors import IndexSyncError, StrategyImbalanceError, UnknownStrategy
from indexsync.strategy import (
    Atomic,
    Bypass,
    Strategy,
    StrategyStack,
    Urgent,
    current_stack,
    notify,
    register_strategy,
    strategy,
)
from indexsync.strategy.stack import STRATEGIES
from tests.tools import city, requested

A, B, C = city("A"), city("B"), city("C")


def test_base_strategy(stack):
    """Does a new stack start with only its base strategy?"""
    assert len(stack) == 1
    assert isinstance(stack.current, Urgent)
    assert stack.current is stack.base
    assert isinstance(StrategyStack(client=stack.client, base=StrategyName.atomic).current, Atomic)


def test_default_base_strategy(settings, client):
    """Is the base strategy taken from the settings?"""
    assert isinstance(StrategyStack(client=client).current, Urgent)
    settings.default_strategy = StrategyName.bypass
    assert isinstance(StrategyStack(client=client).current, Bypass)


def test_bypass(stack, client):
    """Does bypass ignore all notifications?"""
    with stack.wrap("bypass"):
        for _ in range(3):
            stack.update("geo#city", [A, B])
        stack.update("geo#country", [C])
    assert client.requests == []


def test_urgent(stack, client):
    """Does urgent send a request for every notification, right away and in order?"""
    with stack.wrap("urgent"):
        stack.update("geo#city", [A])
        assert requested(client) == [("single", "geo#city", ["A"])]
        stack.update("geo#city", [B])
        assert requested(client) == [("single", "geo#city", ["A"]), ("single", "geo#city", ["B"])]
        stack.update("geo#city", [A, C])
    assert requested(client)[2:] == [("bulk", "geo#city", ["A", "C"])]


def test_urgent_single_object(stack, client):
    """Can a single object be notified without wrapping it in a list?"""
    stack.update("geo#city", A)
    assert client.requests == [("single", "geo#city", A)]


def test_atomic(stack, client):
    """Does atomic send one deduplicated bulk request when it is left?"""
    with stack.wrap("atomic"):
        stack.update("geo#city", [A, B])
        stack.update("geo#city", [A])
        assert client.requests == []
    assert requested(client) == [("bulk", "geo#city", ["A", "B"])]


def test_atomic_identity(stack, client):
    """Are objects deduplicated by identity, not by equality?"""
    a1, a2 = city("A"), city("A")
    assert a1 == a2
    with stack.wrap("atomic"):
        stack.update("geo#city", [a1, a2, a1])
    ((_, _, objects),) = client.requests
    assert len(objects) == 2
    assert objects[0] is a1 and objects[1] is a2


def test_atomic_types(stack, client):
    """Does atomic send one request per type?"""
    with stack.wrap("atomic") as atomic:
        stack.update("geo#city", [A])
        stack.update("geo#country", [C])
        stack.update("geo#city", [B])
        assert atomic.pending == {"geo#city": [A, B], "geo#country": [C]}
    assert requested(client) == [("bulk", "geo#city", ["A", "B"]), ("bulk", "geo#country", ["C"])]


def test_atomic_empty(stack, client):
    """Does an atomic strategy without notifications send nothing?"""
    with stack.wrap("atomic"):
        pass
    assert client.requests == []


def test_nested_urgent_in_atomic(stack, client):
    """Are nested strategies independent of the strategy around them?"""
    with stack.wrap("atomic"):
        stack.update("geo#city", [A])
        with stack.wrap("urgent"):
            stack.update("geo#city", [C])
        stack.update("geo#city", [B])
        assert requested(client) == [("single", "geo#city", ["C"])]
    assert requested(client) == [("single", "geo#city", ["C"]), ("bulk", "geo#city", ["A", "B"])]


def test_nested_atomic(stack, client):
    """Does a nested atomic strategy only send its own objects, when it is left?"""
    with stack.wrap("atomic") as outer:
        stack.update("geo#city", [A])
        with stack.wrap("atomic"):
            stack.update("geo#city", [A, B])
        assert requested(client) == [("bulk", "geo#city", ["A", "B"])]
        assert outer.pending == {"geo#city": [A]}
    assert requested(client) == [("bulk", "geo#city", ["A", "B"]), ("bulk", "geo#city", ["A"])]


def test_nested_bypass(stack, client):
    """Does a nested bypass leave the outer atomic strategy alone?"""
    with stack.wrap("atomic"):
        stack.update("geo#city", [A])
        with stack.wrap("bypass"):
            stack.update("geo#city", [B])
    assert requested(client) == [("bulk", "geo#city", ["A"])]


def test_push_pop(stack, client):
    """Can we push and pop strategies without a scope?"""
    stack.push("bypass")
    stack.update("geo#city", [A])
    stack.push("atomic")
    stack.update("geo#city", [B])
    assert len(stack) == 3
    popped = stack.pop()
    assert isinstance(popped, Atomic) and popped.closed
    assert requested(client) == [("bulk", "geo#city", ["B"])]
    stack.pop()
    stack.update("geo#city", [C])
    assert requested(client)[-1] == ("single", "geo#city", ["C"])
    assert len(stack) == 1


def test_pop_base(stack):
    """Is popping the base strategy refused, leaving the stack intact?"""
    base = stack.current
    with pytest.raises(StrategyImbalanceError):
        stack.pop()
    assert len(stack) == 1
    assert stack.current is base
    assert not base.closed


def test_wrap_exception(stack, client):
    """Is the strategy popped (and flushed) when the wrapped code raises, and is the error passed on?"""
    with pytest.raises(ValueError, match="oops"):
        with stack.wrap("atomic"):
            stack.update("geo#city", [A])
            with stack.wrap("bypass"):
                raise ValueError("oops")
    assert len(stack) == 1
    assert requested(client) == [("bulk", "geo#city", ["A"])]


def test_wrap_callable(stack, client):
    """Can we wrap a callable, getting its result?"""

    def action():
        assert isinstance(stack.current, Atomic)
        stack.update("geo#city", [A])
        return 42

    assert stack.wrap("atomic", action) == 42
    assert len(stack) == 1
    assert requested(client) == [("bulk", "geo#city", ["A"])]

    def failing():
        raise KeyError("x")

    with pytest.raises(KeyError):
        stack.wrap("bypass", failing)
    assert len(stack) == 1


def test_balance(stack):
    """Are there as many pops as pushes, whatever happens in the wrapped code?"""

    def nest(depth):
        if depth == 0:
            raise RuntimeError("bottom")
        with stack.wrap(["urgent", "atomic", "bypass"][depth % 3]):
            assert len(stack) == 7 - depth
            nest(depth - 1)

    with pytest.raises(RuntimeError):
        nest(5)
    assert len(stack) == 1


def test_urgent_failure(failing_client):
    """Is a failing urgent update raised to the notifier?"""
    stack = StrategyStack(client=failing_client, base="urgent")
    with pytest.raises(ConnectionError):
        stack.update("geo#city", [A])


def test_atomic_failure(failing_client):
    """Is a failing atomic update raised when leaving the strategy, dropping the pending objects?"""
    stack = StrategyStack(client=failing_client, base="bypass")
    with pytest.raises(ConnectionError):
        with stack.wrap("atomic") as atomic:
            stack.update("geo#city", [A])
    assert len(stack) == 1
    assert atomic.closed
    assert atomic.pending == {}
    assert len(failing_client.requests) == 1


def test_atomic_failure_during_error(failing_client):
    """If the wrapped code raises and the update fails as well, do we still get the original error?"""
    stack = StrategyStack(client=failing_client, base="bypass")
    with pytest.raises(ValueError, match="original"):
        with stack.wrap("atomic"):
            stack.update("geo#city", [A])
            raise ValueError("original")
    assert len(stack) == 1


def test_closed_strategy(stack):
    """Does a strategy refuse notifications after it was left?"""
    with stack.wrap("atomic") as atomic:
        pass
    with pytest.raises(IndexSyncError):
        atomic.notify("geo#city", [A])


def test_unknown_strategy(stack):
    with pytest.raises(UnknownStrategy):
        stack.push("sometimes")
    assert len(stack) == 1
    with pytest.raises(UnknownStrategy):
        StrategyStack(client=stack.client, base="sometimes")


def test_custom_strategy(stack, client):
    """Can we register our own strategy?"""

    class Counting(Strategy):
        name = "counting"

        def __init__(self, *args, **kargs):
            super().__init__(*args, **kargs)
            self.count = 0

        def update(self, type_name, objects):
            self.count += len(objects)

        def leave(self):
            self.client.single_update("counts", self.count)

    register_strategy("counting", Counting)
    try:
        with stack.wrap("counting"):
            stack.update("geo#city", [A, B])
            stack.update("geo#city", [C])
        assert client.requests == [("single", "counts", 3)]
    finally:
        STRATEGIES.pop("counting")

    with pytest.raises(TypeError):
        register_strategy("counting", dict)


def test_context_strategy(context_stack, client):
    """Do strategy() and notify() use the stack of the current context?"""
    assert current_stack() is context_stack
    assert strategy() is context_stack
    strategy("atomic")
    notify("geo#city", [A])
    notify("geo#city", [B])
    strategy().pop()
    with strategy().wrap("urgent"):
        notify("geo#city", [C])
    assert requested(client) == [("bulk", "geo#city", ["A", "B"]), ("single", "geo#city", ["C"])]


def test_thread_isolation(context_stack):
    """Does every thread get its own stack?"""
    context_stack.push("bypass")
    seen = {}

    def run():
        stack = current_stack()
        seen["stack"] = stack
        seen["depth"] = len(stack)
        stack.push("atomic")
        seen["again"] = current_stack()

    thread = threading.Thread(target=run)
    thread.start()
    thread.join()
    assert seen["stack"] is not context_stack
    assert seen["depth"] == 1
    assert seen["again"] is seen["stack"]
    assert len(context_stack) == 2
    context_stack.pop()


def test_task_isolation(context_stack):
    """Does every asyncio task get its own stack, even though it inherits the context?"""

    async def task(name):
        stack = current_stack()
        with stack.wrap("atomic"):
            await asyncio.sleep(0)
            assert current_stack() is stack
            return stack, len(stack)

    async def main():
        outer = current_stack()
        outer.push("bypass")
        results = await asyncio.gather(task("a"), task("b"))
        return outer, results

    outer, [(stack_a, depth_a), (stack_b, depth_b)] = asyncio.run(main())
    assert stack_a is not stack_b
    assert outer not in (stack_a, stack_b)
    assert depth_a == depth_b == 2
