from __future__ import annotations

from .config import INPUT_LIMIT


class Composer:
    """Chat input box state, hard-truncated to the input limit."""

    def __init__(self, limit: int = INPUT_LIMIT) -> None:
        self._limit = limit
        self._value = ""

    @property
    def value(self) -> str:
        return self._value

    @property
    def limit(self) -> int:
        return self._limit

    def set(self, value: str) -> str:
        # Truncation happens at entry time, never at submit time.
        self._value = (value or "")[: self._limit]
        return self._value

    def clear(self) -> None:
        self._value = ""

    def counter(self) -> str:
        return f"{len(self._value)}/{self._limit} characters"
