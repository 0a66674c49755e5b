"""
Pytest configuration for the sequence helper tests.

Puts the project root on the Python path (so tests can import lazy, utils,
models and app) and provides a few hand-written iteration sources.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import itertools
import pytest

from lazy import IterationSource, PullResult
from utils import CountingSource


class FibonacciSource(IterationSource):
    """Fibonacci numbers up to ``limit``; remembers how it was closed."""

    def __init__(self, limit):
        self.first = 0
        self.second = 1
        self.limit = limit
        self.closed_with = None

    def pull(self):
        if self.second <= self.limit:
            result = PullResult.of(self.second)
            self.first, self.second = self.second, self.first + self.second
            return result
        return PullResult.DONE

    def close_normally(self, value=None):
        self.second = self.limit + 1
        self.closed_with = ("normal", value)
        return PullResult.DONE

    def close_with_error(self, error=None):
        self.second = self.limit + 1
        self.closed_with = ("error", error)
        return PullResult.DONE


FIBONACCI_55 = [1, 1, 2, 3, 5, 8, 13, 21, 34, 55]


@pytest.fixture
def fibonacci():
    """Factory for Fibonacci sources."""
    return FibonacciSource


@pytest.fixture
def counting():
    """Factory for pull/close counting sources."""
    return CountingSource


@pytest.fixture
def infinite_counter():
    """Counting source over 0, 1, 2, ... forever."""
    return CountingSource(itertools.count())
