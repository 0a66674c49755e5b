"""
Lazy sequence adapter over pull-based iteration sources.

A source hands out one element per ``pull()`` as a ``PullResult`` and may be
closed early with ``close_normally`` / ``close_with_error``. ``LazySequence``
wraps a source, is itself a source, and adds chainable lazy operations
(map, filter, flat_map, take, drop) and short-circuiting queries
(find, some, every). Nothing is pulled until a caller asks for an element.
"""

import inspect
import logging
import math
import numbers
from abc import ABC, abstractmethod
from collections.abc import Generator, Iterable
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class InvalidSourceError(TypeError):
    """Raised when a value cannot be used as an iteration source."""
    pass


@dataclass(frozen=True)
class PullResult:
    """Outcome of one pull: either a value or the completion signal."""
    done: bool
    value: Any = None

    DONE: ClassVar["PullResult"]

    @classmethod
    def of(cls, value: Any) -> "PullResult":
        return cls(False, value)


PullResult.DONE = PullResult(True)


class IterationSource(ABC):
    """
    Pull-based source of elements.

    Subclasses implement ``pull``. Both close operations are optional and
    default to doing nothing but reporting completion.
    """

    @abstractmethod
    def pull(self) -> PullResult:
        """Return the next element, or ``PullResult.DONE`` once exhausted."""

    def close_normally(self, value: Any = None) -> PullResult:
        return PullResult.DONE

    def close_with_error(self, error: Optional[BaseException] = None) -> PullResult:
        return PullResult.DONE


class EmptySource(IterationSource):
    """A source that is exhausted from the start."""

    def pull(self) -> PullResult:
        return PullResult.DONE


class IteratorSource(IterationSource):
    """Adapts a native Python iterable (list, range, generator...) to the pull protocol."""

    def __init__(self, iterable: Iterable):
        self._iterator = iter(iterable)
        self._done = False
        self._closed = False

    def pull(self) -> PullResult:
        if self._done:
            return PullResult.DONE
        try:
            value = next(self._iterator)
        except StopIteration:
            self._done = True
            return PullResult.DONE
        except Exception:
            self._done = True
            raise
        return PullResult.of(value)

    def close_normally(self, value: Any = None) -> PullResult:
        if not self._closed:
            self._closed = True
            self._done = True
            self._close_iterator()
        return PullResult.DONE

    def close_with_error(self, error: Optional[BaseException] = None) -> PullResult:
        if not self._closed:
            self._closed = True
            if not self._done and isinstance(self._iterator, Generator) and isinstance(error, BaseException):
                # Let the generator run its own except/finally blocks.
                try:
                    self._iterator.throw(error)
                except StopIteration:
                    pass
                except BaseException as exc:
                    if exc is not error:
                        raise
            self._done = True
            self._close_iterator()
        return PullResult.DONE

    def _close_iterator(self) -> None:
        # Generators, files and other closeable iterators.
        close = getattr(self._iterator, "close", None)
        if callable(close):
            close()


def as_source(value: Any) -> IterationSource:
    """Coerce ``value`` into an ``IterationSource`` or raise ``InvalidSourceError``."""
    if value is None:
        return EmptySource()
    if isinstance(value, IterationSource):
        return value
    if isinstance(value, Iterable):
        return IteratorSource(value)
    raise InvalidSourceError(
        f"Cannot use {type(value).__name__!r} as an iteration source: "
        f"expected an IterationSource or an iterable"
    )


def _accepts_index(fn: Callable) -> bool:
    try:
        parameters = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return False
    required = 0
    for parameter in parameters:
        if parameter.kind == parameter.VAR_POSITIONAL:
            return True
        if (parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD)
                and parameter.default is parameter.empty):
            required += 1
    return required >= 2


def _to_count(n: Any, operation: str):
    if isinstance(n, bool) or not isinstance(n, numbers.Real):
        raise TypeError(f"{operation}() count must be a number, not {type(n).__name__}")
    if n == math.inf:
        return n
    if n != n or n < 0 or int(n) != n:
        raise ValueError(f"{operation}() count must be a non-negative integer, got {n!r}")
    return int(n)


class LazySequence(IterationSource, Generic[T]):
    """
    Chainable, single-pass, lazy view over one iteration source.

    The adapter owns its source exclusively: once wrapped (or once a chain
    operation has been called on it) nobody else should pull from it. Every
    chain operation returns a new stage wrapping this one; transformations
    run inside the stage's own ``pull`` so nothing is ever buffered.
    """

    def __init__(self, source: Any = None):
        self._source = as_source(source)
        self._done = False      # no more elements will be produced
        self._closed = False    # upstream has been released

    # --------- pull protocol ----------
    def pull(self) -> PullResult:
        if self._done:
            return PullResult.DONE
        try:
            result = self._advance()
        except Exception:
            self._done = True
            raise
        if result.done:
            self._done = True
            return PullResult.DONE
        return result

    next = pull

    def _advance(self) -> PullResult:
        return self._source.pull()

    # --------- python iterator protocol ----------
    def __iter__(self):
        return self

    def __next__(self) -> T:
        result = self.pull()
        if result.done:
            raise StopIteration
        return result.value

    # --------- chainable operators (lazy) ----------
    def map(self, fn: Callable[[T, int], U]) -> "LazySequence[U]":
        """
        Apply ``fn`` to every element.

        ``fn`` receives the running index (0, 1, ...) of the element as a
        second argument when it accepts two positional arguments.
        """
        return _MapStage(self, fn)

    def filter(self, pred: Callable[[T], bool]) -> "LazySequence[T]":
        """
        Keep only the elements satisfying ``pred``.

        Over an infinite source where nothing ever matches, the next pull
        never returns.
        """
        return _FilterStage(self, pred)

    def flat_map(self, fn: Callable[[T], Any]) -> "LazySequence[Any]":
        """Replace every element by all elements of the source ``fn(value)`` returns."""
        return _FlatMapStage(self, fn)

    def take(self, n) -> "LazySequence[T]":
        """Yield at most ``n`` elements; element ``n + 1`` is never pulled."""
        return _TakeStage(self, _to_count(n, "take"))

    def drop(self, n) -> "LazySequence[T]":
        """Skip the first ``n`` elements."""
        return _DropStage(self, _to_count(n, "drop"))

    # --------- short-circuiting queries ----------
    def find(self, pred: Callable[[T], bool]) -> Optional[T]:
        """Return the first element satisfying ``pred``, or None."""
        for value in self:
            if self._invoke(pred, value):
                return value
        return None

    def some(self, pred: Callable[[T], bool]) -> bool:
        for value in self:
            if self._invoke(pred, value):
                return True
        return False

    def every(self, pred: Callable[[T], bool]) -> bool:
        for value in self:
            if not self._invoke(pred, value):
                return False
        return True

    def to_list(self) -> List[T]:
        return list(self)

    # --------- cleanup delegation ----------
    def close_normally(self, value: Any = None) -> PullResult:
        """Release upstream sources once; later calls only report completion."""
        if not self._closed:
            self._closed = True
            self._done = True
            self._release(lambda source: source.close_normally(value))
        return PullResult.DONE

    def close_with_error(self, error: Optional[BaseException] = None) -> PullResult:
        """Like ``close_normally`` but signals abnormal termination. Never raises."""
        if not self._closed:
            self._closed = True
            self._done = True
            self._release(lambda source: source.close_with_error(error))
        return PullResult.DONE

    close = close_normally
    throw = close_with_error

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc is None:
            self.close_normally()
        else:
            self.close_with_error(exc)
        return False

    # --------- helpers ----------
    def _upstream(self) -> List[IterationSource]:
        """Sources to release on close, innermost-active first."""
        return [self._source]

    def _release(self, close: Callable[[IterationSource], Any]) -> None:
        for source in self._upstream():
            try:
                close(source)
            except BaseException:
                logger.warning("Closing %s failed", type(source).__name__, exc_info=True)
        logger.debug("Closed %s", type(self).__name__)

    def _invoke(self, fn: Callable, *args):
        # A failed callback leaves the stage closed.
        try:
            return fn(*args)
        except Exception as exc:
            self.close_with_error(exc)
            raise


def wrap(source: Any = None) -> LazySequence:
    """Wrap an iteration source (or iterable, or nothing) in a ``LazySequence``."""
    return LazySequence(source)


class _MapStage(LazySequence):

    def __init__(self, parent: LazySequence, fn: Callable):
        super().__init__(parent)
        self._fn = fn
        self._with_index = _accepts_index(fn)
        self._index = 0

    def _advance(self) -> PullResult:
        result = self._source.pull()
        if result.done:
            return result
        if self._with_index:
            value = self._invoke(self._fn, result.value, self._index)
        else:
            value = self._invoke(self._fn, result.value)
        self._index += 1
        return PullResult.of(value)


class _FilterStage(LazySequence):

    def __init__(self, parent: LazySequence, pred: Callable):
        super().__init__(parent)
        self._pred = pred

    def _advance(self) -> PullResult:
        while True:
            result = self._source.pull()
            if result.done or self._invoke(self._pred, result.value):
                return result


class _FlatMapStage(LazySequence):

    def __init__(self, parent: LazySequence, fn: Callable):
        super().__init__(parent)
        self._fn = fn
        self._inner: Optional[IterationSource] = None

    def _advance(self) -> PullResult:
        while True:
            if self._inner is not None:
                result = self._inner.pull()
                if not result.done:
                    return result
                self._inner = None
            outer = self._source.pull()
            if outer.done:
                return outer
            self._inner = self._invoke(lambda value: as_source(self._fn(value)), outer.value)

    def _upstream(self) -> List[IterationSource]:
        if self._inner is None:
            return [self._source]
        return [self._inner, self._source]


class _TakeStage(LazySequence):

    def __init__(self, parent: LazySequence, limit):
        super().__init__(parent)
        self._remaining = limit

    def _advance(self) -> PullResult:
        if self._remaining <= 0:
            return PullResult.DONE
        result = self._source.pull()
        if not result.done:
            self._remaining -= 1
        return result


class _DropStage(LazySequence):

    def __init__(self, parent: LazySequence, count):
        super().__init__(parent)
        self._remaining = count

    def _advance(self) -> PullResult:
        while self._remaining > 0:
            result = self._source.pull()
            if result.done:
                return result
            self._remaining -= 1
        return self._source.pull()
