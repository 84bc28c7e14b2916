from indexsync.strategy.atomic import Atomic
from indexsync.strategy.base import Strategy
from indexsync.strategy.bypass import Bypass
from indexsync.strategy.stack import (
    STRATEGIES,
    StrategyStack,
    current_stack,
    notify,
    register_strategy,
    set_stack,
    strategy,
    strategy_class,
)
from indexsync.strategy.urgent import Urgent

__all__ = [
    "Atomic",
    "Bypass",
    "STRATEGIES",
    "Strategy",
    "StrategyStack",
    "Urgent",
    "current_stack",
    "notify",
    "register_strategy",
    "set_stack",
    "strategy",
    "strategy_class",
]
