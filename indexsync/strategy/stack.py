"""
Nested update strategies.

Strategies can be nested, so it is possible to use another strategy within a scope:

    with strategy().wrap("atomic"):
        city1.save()
        with strategy().wrap("urgent"):
            city2.save()
            city3.save()
            # city2 and city3 are updated with two separate requests right away
        city4.save()
        # city1 and city4 are updated in one bulk request when the atomic scope is left

Strategies can also be pushed and popped explicitly:

    strategy("bypass")
    city1.save()  # not updated
    strategy().pop()

Every thread (and every asyncio task) has its own stack. The bottom (base) strategy of
a stack is never popped.
"""

import asyncio
import logging
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Iterator, TypeVar

from indexsync.client import ElasticIndexClient, IndexClient
from indexsync.config import StrategyName, get_settings
from indexsync.errors import StrategyImbalanceError, UnknownStrategy
from indexsync.strategy.atomic import Atomic
from indexsync.strategy.base import Strategy
from indexsync.strategy.bypass import Bypass
from indexsync.strategy.urgent import Urgent

T = TypeVar("T")

STRATEGIES: dict[str, type[Strategy]] = {
    StrategyName.bypass.value: Bypass,
    StrategyName.urgent.value: Urgent,
    StrategyName.atomic.value: Atomic,
}


def register_strategy(name: str, cls: type[Strategy]) -> None:
    """Make a custom strategy available under the given name"""
    if not (isinstance(cls, type) and issubclass(cls, Strategy)):
        raise TypeError(f"Strategy should be a subclass of Strategy, not {cls!r}")
    STRATEGIES[name] = cls


def strategy_class(name: str | StrategyName) -> type[Strategy]:
    key = name.value if isinstance(name, StrategyName) else name
    try:
        return STRATEGIES[key]
    except KeyError:
        raise UnknownStrategy(key) from None


class StrategyStack:
    def __init__(self, client: IndexClient | None = None, base: str | StrategyName | None = None):
        self.client: IndexClient = client if client is not None else ElasticIndexClient()
        base = base if base is not None else get_settings().default_strategy
        self._stack: list[Strategy] = [strategy_class(base)(self.client)]

    def __len__(self):
        return len(self._stack)

    def __repr__(self):
        return f"<StrategyStack {' > '.join(s.name for s in self._stack)}>"

    @property
    def current(self) -> Strategy:
        return self._stack[-1]

    @property
    def base(self) -> Strategy:
        return self._stack[0]

    def push(self, name: str | StrategyName) -> Strategy:
        strategy = strategy_class(name)(self.client)
        self._stack.append(strategy)
        logging.debug(f"Entering {strategy.name} strategy (depth {len(self._stack) - 1})")
        return strategy

    def pop(self) -> Strategy:
        """
        Remove the current strategy and send its pending updates.
        Raises StrategyImbalanceError (leaving the stack as it is) if only the base strategy is left.
        """
        if len(self._stack) <= 1:
            raise StrategyImbalanceError("Cannot pop the base strategy")
        strategy = self._stack.pop()
        strategy.close()
        return strategy

    @contextmanager
    def _scope(self, name: str | StrategyName) -> Iterator[Strategy]:
        strategy = self.push(name)
        try:
            yield strategy
        except BaseException:
            # the error of the wrapped code is raised, a failing flush is only logged
            try:
                self.pop()
            except Exception:
                logging.exception(f"Leaving {strategy.name} strategy failed while handling another error")
            raise
        else:
            self.pop()

    def wrap(self, name: str | StrategyName, action: Callable[[], T] | None = None) -> Any:
        """
        Run code with the given strategy, which is popped on every exit path.
        Use as a context manager (`with stack.wrap("atomic"): ...`), or pass a callable
        to run it within the strategy and return its result.
        """
        if action is None:
            return self._scope(name)
        with self._scope(name):
            return action()

    def update(self, type_name: str, objects: Any) -> None:
        """Notify the current strategy that these objects (of the given type) have changed"""
        self.current.notify(type_name, objects)

    notify = update


_context_stack: ContextVar[tuple[Any, StrategyStack] | None] = ContextVar("indexsync_strategy", default=None)


def _context_owner() -> Any:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    return task if task is not None else threading.get_ident()


def current_stack() -> StrategyStack:
    """
    The strategy stack of the current thread or task, created on first use.
    Tasks inherit the context of the code that started them, so we also keep track
    of the owner: a stack is never shared with another task or thread.
    """
    owner = _context_owner()
    entry = _context_stack.get()
    if entry is None or entry[0] != owner:
        entry = (owner, StrategyStack())
        _context_stack.set(entry)
    return entry[1]


def set_stack(stack: StrategyStack | None) -> None:
    """Use the given stack for the current thread or task (or drop it, so the next use creates a new one)"""
    _context_stack.set(None if stack is None else (_context_owner(), stack))


def strategy(name: str | StrategyName | None = None) -> StrategyStack:
    """
    Get the current strategy stack. If a name is given, that strategy is pushed first.
    Use strategy().wrap(name) for a strategy that is popped automatically.
    """
    stack = current_stack()
    if name is not None:
        stack.push(name)
    return stack


def notify(type_name: str, objects: Any) -> None:
    """Entry point for code that tracks changes: the objects of this type were changed"""
    current_stack().update(type_name, objects)
