"""
Exceptions raised by indexsync.

Configuration problems in the field tree are raised when the type is defined,
never while composing documents. Strategy and dispatch errors surface to the
code that triggered them (the notifier for urgent updates, the code leaving a
strategy scope for atomic ones).
"""


class IndexSyncError(Exception):
    pass


class FieldConfigurationError(IndexSyncError, ValueError):
    """A field or root option cannot be used to build a mapping"""


class StrategyImbalanceError(IndexSyncError, RuntimeError):
    """Attempt to pop the base strategy of a stack"""


class UnknownStrategy(IndexSyncError, KeyError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown strategy {name!r}")

    def __str__(self):
        return self.args[0]


class UnderivableType(IndexSyncError, LookupError):
    pass


class IndexUpdateError(IndexSyncError):
    """Sending documents to elastic failed"""

    def __init__(self, type_name: str, errors: list):
        self.type_name = type_name
        self.errors = errors
        reason = first_error_reason(errors)
        super().__init__(f"Updating {type_name} failed for {len(errors)} document(s). First error: {reason}")


def first_error_reason(errors: list):
    if not errors:
        return None
    _, error = list(errors[0].items())[0]
    return error.get("error", {}).get("reason", error) if isinstance(error, dict) else error
