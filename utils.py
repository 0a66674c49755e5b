"""
Utility functions for the ArM5 tools sequence helpers.

Companions of the lazy sequence adapter (an eager range and a constant-true
predicate), logging setup, and the named-operation vocabulary used by the
HTTP layer to build lazy pipelines without evaluating user code.
"""

import sys
import time
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from lazy import IterationSource, LazySequence, PullResult, wrap

logger = logging.getLogger(__name__)


class OperationError(ValueError):
    """Raised when a pipeline operation is unknown or malformed."""
    pass


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Setup structured logging for the tools site"""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    return logging.getLogger('arm5tools')


# ---------- Companions ----------

def true_supplier(*args, **kwargs) -> bool:
    """Predicate accepting anything."""
    return True


def generic_range(start, end, step=1, inclusive: bool = False) -> List[Any]:
    """
    Eagerly build the list ``start, start + step, ...`` up to ``end``.

    Works for ints and floats. ``end`` is excluded unless ``inclusive`` is
    set. A step pointing away from ``end`` gives an empty list.
    """
    if step == 0:
        raise ValueError("generic_range() step must not be zero")

    result = []
    current = start
    if step > 0:
        while current < end or (inclusive and current == end):
            result.append(current)
            current += step
    else:
        while current > end or (inclusive and current == end):
            result.append(current)
            current += step
    return result


class CountingSource(IterationSource):
    """Iteration source over an iterable that records pulls and closes."""

    def __init__(self, iterable: Iterable):
        self._iterator = iter(iterable)
        self._done = False
        self.pulls = 0
        self.normal_closes = 0
        self.error_closes = 0

    def pull(self) -> PullResult:
        if self._done:
            return PullResult.DONE
        try:
            value = next(self._iterator)
        except StopIteration:
            self._done = True
            return PullResult.DONE
        self.pulls += 1
        return PullResult.of(value)

    def close_normally(self, value: Any = None) -> PullResult:
        self.normal_closes += 1
        self._done = True
        return PullResult.DONE

    def close_with_error(self, error: Optional[BaseException] = None) -> PullResult:
        self.error_closes += 1
        self._done = True
        return PullResult.DONE

    @property
    def closes(self) -> int:
        return self.normal_closes + self.error_closes


# ---------- Named operations ----------

def _operand(op: Dict[str, Any], default=None):
    value = op.get("operand", default)
    if value is None:
        raise OperationError(f"Operation {op.get('type')!r} requires an operand")
    return value


def build_mapper(op: Dict[str, Any]) -> Callable[[Any, int], Any]:
    """Mapper for a map operation: add, multiply, square, negate, index."""
    name = op.get("operation")
    if name == "add":
        operand = _operand(op)
        return lambda x, i: x + operand
    elif name == "multiply":
        operand = _operand(op)
        return lambda x, i: x * operand
    elif name == "square":
        return lambda x, i: x * x
    elif name == "negate":
        return lambda x, i: -x
    elif name == "index":
        return lambda x, i: i
    raise OperationError(f"Unknown map operation: {name!r}")


def build_predicate(op: Dict[str, Any]) -> Callable[[Any], bool]:
    """Predicate for filter and query operations."""
    name = op.get("predicate")
    if name == "even":
        return lambda x: x % 2 == 0
    elif name == "odd":
        return lambda x: x % 2 != 0
    elif name == "gt":
        operand = _operand(op)
        return lambda x: x > operand
    elif name == "lt":
        operand = _operand(op)
        return lambda x: x < operand
    elif name == "eq":
        operand = _operand(op)
        return lambda x: x == operand
    elif name == "divisible_by":
        operand = _operand(op)
        if operand == 0:
            raise OperationError("divisible_by operand must not be zero")
        return lambda x: x % operand == 0
    elif name == "any":
        return true_supplier
    raise OperationError(f"Unknown predicate: {name!r}")


def apply_operation(sequence: LazySequence, op: Dict[str, Any]) -> LazySequence:
    """Apply one named chain operation to ``sequence``; nothing is pulled."""
    op_type = op.get("type")

    if op_type == "map":
        return sequence.map(build_mapper(op))
    elif op_type == "filter":
        return sequence.filter(build_predicate(op))
    elif op_type in ("take", "drop"):
        count = op.get("count")
        if count is None:
            raise OperationError(f"Operation {op_type!r} requires a count")
        try:
            return sequence.take(count) if op_type == "take" else sequence.drop(count)
        except (TypeError, ValueError) as e:
            raise OperationError(str(e)) from e
    elif op_type == "flat_map":
        count = op.get("count", 1)
        if count is None or count < 0:
            raise OperationError("flat_map count must be a non-negative integer")
        return sequence.flat_map(lambda x: (x for _ in range(count)))
    raise OperationError(f"Unknown operation type: {op_type!r}")


def run_sequence(source_data: Iterable, operations: List[Dict[str, Any]],
                 query: Optional[Dict[str, Any]] = None, limit: int = 100) -> Dict[str, Any]:
    """
    Build a lazy pipeline over ``source_data`` and evaluate it.

    Without a query, the first ``limit`` elements are collected. With a
    query (find, some, every) its answer is returned instead. The chain is
    always closed afterwards, and ``pulled`` reports how many elements were
    actually taken from the source.
    """
    start_time = time.perf_counter()
    source = CountingSource(source_data)
    sequence = wrap(source)
    operations_applied = []

    for op in operations:
        sequence = apply_operation(sequence, op)
        operations_applied.append(op.get("type"))

    with sequence:
        if query is None:
            values = sequence.take(limit).to_list()
            result = {"values": values, "count": len(values)}
        else:
            kind = query.get("type")
            pred = build_predicate(query)
            if kind == "find":
                answer = sequence.find(pred)
            elif kind == "some":
                answer = sequence.some(pred)
            elif kind == "every":
                answer = sequence.every(pred)
            else:
                raise OperationError(f"Unknown query type: {kind!r}")
            result = {"answer": answer, "query": kind}

    processing_time_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"Evaluated {len(operations_applied)} operation(s), pulled {source.pulls} element(s) "
        f"in {processing_time_ms:.2f}ms"
    )

    result.update({
        "operations_applied": operations_applied,
        "pulled": source.pulls,
        "source_closed": source.closes > 0,
        "processing_time_ms": processing_time_ms,
    })
    return result
