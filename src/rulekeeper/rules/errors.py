"""Exceptions raised by the rules engine.

Malformed document or query text never raises; it degrades to smaller
results. Only state errors, such as querying before the first successful
build, surface as exceptions.
"""


class RulesError(Exception):
    """Base class for rules engine errors."""


class IndexNotReadyError(RulesError):
    """A query arrived before any rule index was successfully built."""

    def __init__(self, message: str = "Rule index has not been built yet") -> None:
        super().__init__(message)
