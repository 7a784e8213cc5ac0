"""
Lock-guarded counter shared by concurrent handler actions
"""

import threading


class SharedCounter:
    """
    Non-negative integer that is only read or written under its own lock.

    The lock is held around plain arithmetic only and never spans an await.
    """

    def __init__(self, initial: int = 0):
        if initial < 0:
            raise ValueError(f"Counter cannot start below zero: {initial}")
        self._value = initial
        self._lock = threading.Lock()

    def add(self, amount: int) -> int:
        """Add amount and return the new total"""
        if amount < 0:
            raise ValueError(f"Counter increments must be non-negative: {amount}")
        with self._lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def reset(self) -> int:
        """Zero the counter and return the previous total"""
        with self._lock:
            previous, self._value = self._value, 0
            return previous
