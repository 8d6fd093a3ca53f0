"""Lazy, chainable sequences over any iterable.

A Sequence is a single-pass cursor over a source.  Lazy combinators such as
filter, map or take return a new Sequence with one more pipeline stage and do
no work until an element is pulled.  Terminal combinators such as to_list,
fold or group_by drain the sequence (or stop as soon as the answer is known).

    >>> sequence_of(1, 2, 3, 4).filter(lambda x: x % 2 == 0).map(lambda x: x * 10).to_list()
    [20, 40]
"""
import logging
import math
from typing import (
    Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Set, Tuple, TypeVar, Union
)

from pydantic import BaseModel

from kollection.pipe import basic
from kollection.pipe.core import OperationWork, Pipeline
from kollection.util.data_manipulation import extract_property
from kollection.util.iterators import contains, get_iterator, is_atomic, is_iterable

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')
K = TypeVar('K')
V = TypeVar('V')

_NOTHING = object()


def _always_true(_: Any) -> bool:
    return True


class NoSuchElementError(LookupError):
    """Raised when an operation needs an element and the sequence has none."""


class AmbiguousElementError(ValueError):
    """Raised by single() when more than one element matches."""


class ElementIndexError(IndexError):
    """Raised by element_at() for an index outside the sequence."""


class Partition(BaseModel):
    """Result of Sequence.partition: matching items in true, the rest in false."""

    true: List[Any]
    false: List[Any]


class Sequence(Generic[T]):
    """A single-pass, lazily evaluated view over an iterable.

    The pipeline is realized on the first pull; every later pull continues the
    same cursor.  A lazy combinator called before the first pull appends a
    stage to this sequence's pipeline.  Called after iteration has started,
    it builds a new pipeline over the remaining elements.

    Sequences are iterators, so they can be used in for loops, passed to
    list() or used as the source of another sequence.
    """

    def __init__(self, source: Union[Iterable[T], Pipeline] = None):
        if isinstance(source, Pipeline):
            self._pipeline = source
        else:
            self._pipeline = Pipeline([] if source is None else source)
        self._cursor: Optional[Iterator[T]] = None

    # --------- iterator protocol ----------
    def __iter__(self) -> 'Sequence[T]':
        return self

    def __next__(self) -> T:
        if self._cursor is None:
            self._cursor = self._pipeline.realize()
        return next(self._cursor)

    def __contains__(self, element: Any) -> bool:
        return self.contains(element)

    def __repr__(self):
        state = "started" if self._cursor is not None else f"{len(self._pipeline)} stages"
        return f"Sequence({state})"

    # --------- helpers ----------
    def _with_stage(self, work: OperationWork) -> 'Sequence':
        if self._cursor is None:
            return Sequence(self._pipeline.add_operation(work))
        return Sequence(Pipeline(self._cursor).add_operation(work))

    # --------- lazy combinators ----------
    def filter(self, predicate: Callable[[T], bool]) -> 'Sequence[T]':
        return self._with_stage(basic.filterItems(predicate))

    def filter_indexed(self, predicate: Callable[[int, T], bool]) -> 'Sequence[T]':
        return self._with_stage(basic.filterIndexed(predicate))

    def filter_not(self, predicate: Callable[[T], bool]) -> 'Sequence[T]':
        return self.filter(lambda item: not predicate(item))

    def filter_not_none(self) -> 'Sequence[T]':
        return self.filter(lambda item: item is not None)

    def map(self, transform: Callable[[T], R]) -> 'Sequence[R]':
        return self._with_stage(basic.mapItems(transform))

    def map_indexed(self, transform: Callable[[int, T], R]) -> 'Sequence[R]':
        return self._with_stage(basic.mapIndexed(transform))

    def map_not_none(self, transform: Callable[[T], Optional[R]]) -> 'Sequence[R]':
        """Map with transform and drop the results that are None."""
        def zero_or_one(item):
            result = transform(item)
            return () if result is None else (result,)
        return self.flat_map(zero_or_one)

    def flat_map(self, transform: Callable[[T], Iterable[R]]) -> 'Sequence[R]':
        return self._with_stage(basic.flatMap(transform))

    def flatten(self) -> 'Sequence[Any]':
        """Expand nested iterables one level.  Strings and bytes stay whole."""
        return self._with_stage(basic.flatten())

    def take(self, n: int = 1) -> 'Sequence[T]':
        """The first n elements (one by default).  Never pulls more than n elements upstream."""
        if n < 0:
            raise ValueError(f"Requested element count {n} is less than zero")
        return self._with_stage(basic.firstN(n))

    def take_while(self, predicate: Callable[[T], bool]) -> 'Sequence[T]':
        return self._with_stage(basic.takeWhile(predicate))

    def drop(self, n: int) -> 'Sequence[T]':
        if n < 0:
            raise ValueError(f"Requested element count {n} is less than zero")
        return self._with_stage(basic.skipN(n))

    def distinct(self) -> 'Sequence[T]':
        return self._with_stage(basic.distinctBy())

    def distinct_by(self, selector: Callable[[T], K]) -> 'Sequence[T]':
        return self._with_stage(basic.distinctBy(selector))

    def on_each(self, action: Callable[[T], Any]) -> 'Sequence[T]':
        return self._with_stage(basic.onEach(action))

    def plus(self, data: Union[T, Iterable[T]]) -> 'Sequence[T]':
        """Append a single element, or every element of an iterable."""
        other = [data] if is_atomic(data) else data
        return self._with_stage(basic.append(other))

    def minus(self, data: Union[T, Iterable[T]]) -> 'Sequence[T]':
        """Drop every occurrence of an element, or of each element of an iterable."""
        other = [data] if is_atomic(data) else data
        return self._with_stage(basic.exclude(other))

    def zip(self, other: Iterable[R]) -> 'Sequence[Tuple[T, R]]':
        """Pair elements with other's, stopping when either side runs out."""
        return self._with_stage(basic.zipWith(get_iterator(other)))

    def reverse(self) -> 'Sequence[T]':
        """Elements in reverse order.  The whole sequence is buffered on the first pull."""
        return self._with_stage(basic.reverse())

    # --------- predicates ----------
    def all(self, predicate: Callable[[T], bool]) -> bool:
        for item in self:
            if not predicate(item):
                return False
        return True

    def any(self, predicate: Callable[[T], bool] = _always_true) -> bool:
        for item in self:
            if predicate(item):
                return True
        return False

    def none(self, predicate: Callable[[T], bool] = _always_true) -> bool:
        return not self.any(predicate)

    def count(self, predicate: Callable[[T], bool] = _always_true) -> int:
        """Number of elements matching predicate (all elements by default)."""
        num = 0
        for item in self:
            if predicate(item):
                num += 1
        return num

    def contains(self, element: Any) -> bool:
        return contains(self, element)

    # --------- iteration ----------
    def for_each(self, action: Callable[[T], Any]) -> None:
        for item in self:
            action(item)

    def for_each_indexed(self, action: Callable[[int, T], Any]) -> None:
        for index, item in enumerate(self):
            action(index, item)

    # --------- element selection ----------
    def first(self, predicate: Callable[[T], bool] = _always_true) -> T:
        for item in self:
            if predicate(item):
                return item
        raise NoSuchElementError("No such element")

    def first_or_none(self, predicate: Callable[[T], bool] = _always_true) -> Optional[T]:
        for item in self:
            if predicate(item):
                return item
        return None

    def find(self, predicate: Callable[[T], bool] = _always_true) -> Optional[T]:
        return self.first_or_none(predicate)

    def _last_matching(self, predicate: Callable[[T], bool]):
        last = _NOTHING
        for item in self:
            if predicate(item):
                last = item
        return last

    def last(self, predicate: Callable[[T], bool] = _always_true) -> T:
        last = self._last_matching(predicate)
        if last is _NOTHING:
            raise NoSuchElementError("No such element")
        return last

    def last_or_none(self, predicate: Callable[[T], bool] = _always_true) -> Optional[T]:
        last = self._last_matching(predicate)
        return None if last is _NOTHING else last

    def find_last(self, predicate: Callable[[T], bool] = _always_true) -> Optional[T]:
        return self.last_or_none(predicate)

    def single(self, predicate: Callable[[T], bool] = _always_true) -> T:
        """The only element matching predicate.

        Raises:
            NoSuchElementError: if nothing matches
            AmbiguousElementError: as soon as a second match is found
        """
        result = _NOTHING
        for item in self:
            if predicate(item):
                if result is not _NOTHING:
                    raise AmbiguousElementError("Expected a single element but found more than one")
                result = item
        if result is _NOTHING:
            raise NoSuchElementError("No such element")
        return result

    def single_or_none(self, predicate: Callable[[T], bool] = _always_true) -> Optional[T]:
        """The only element matching predicate, or None unless exactly one matches."""
        result = _NOTHING
        for item in self:
            if predicate(item):
                if result is not _NOTHING:
                    return None
                result = item
        return None if result is _NOTHING else result

    def element_at(self, index: int) -> T:
        def out_of_bounds(i):
            raise ElementIndexError(f"Index out of bounds: {i}")
        return self.element_at_or_else(index, out_of_bounds)

    def element_at_or_none(self, index: int) -> Optional[T]:
        return self.element_at_or_else(index, lambda _: None)

    def element_at_or_else(self, index: int, default_value: Callable[[int], T]) -> T:
        if index >= 0:
            for i, item in enumerate(self):
                if i == index:
                    return item
        return default_value(index)

    def index_of(self, element: Any) -> int:
        return self.index_of_first(lambda item: item == element)

    def index_of_first(self, predicate: Callable[[T], bool]) -> int:
        for index, item in enumerate(self):
            if predicate(item):
                return index
        return -1

    def index_of_last(self, predicate: Callable[[T], bool]) -> int:
        result = -1
        for index, item in enumerate(self):
            if predicate(item):
                result = index
        return result

    # --------- folding ----------
    def fold(self, initial: R, operation: Callable[[R, T], R]) -> R:
        result = initial
        for item in self:
            result = operation(result, item)
        return result

    def fold_indexed(self, initial: R, operation: Callable[[int, R, T], R]) -> R:
        result = initial
        for index, item in enumerate(self):
            result = operation(index, result, item)
        return result

    def reduce(self, operation: Callable[[T, T], T]) -> T:
        """Fold using the first element as the initial value.

        Raises:
            NoSuchElementError: if the sequence is empty
        """
        result = self.first()
        for item in self:
            result = operation(result, item)
        return result

    def reduce_indexed(self, operation: Callable[[int, T, T], T]) -> T:
        result = self.first()
        for index, item in enumerate(self, start=1):
            result = operation(index, result, item)
        return result

    def sum(self) -> Any:
        result = 0
        for item in self:
            result += item
        return result

    def sum_by(self, selector: Callable[[T], Any]) -> Any:
        result = 0
        for item in self:
            result += selector(item)
        return result

    def average(self) -> float:
        """Arithmetic mean of the elements, nan for an empty sequence."""
        total = 0
        count = 0
        for item in self:
            total += item
            count += 1
        return math.nan if count == 0 else total / count

    # --------- min / max ----------
    # The first element sets the bound; only strictly greater (or lesser)
    # elements replace it, so ties keep the earliest element.

    def max(self) -> Optional[T]:
        return self.max_by(lambda item: item)

    def min(self) -> Optional[T]:
        return self.min_by(lambda item: item)

    def max_by(self, selector: Callable[[T], Any]) -> Optional[T]:
        best = best_key = _NOTHING
        for item in self:
            key = selector(item)
            if best is _NOTHING or key > best_key:
                best, best_key = item, key
        return None if best is _NOTHING else best

    def min_by(self, selector: Callable[[T], Any]) -> Optional[T]:
        best = best_key = _NOTHING
        for item in self:
            key = selector(item)
            if best is _NOTHING or key < best_key:
                best, best_key = item, key
        return None if best is _NOTHING else best

    def max_with(self, compare: Callable[[T, T], int]) -> Optional[T]:
        """Largest element according to compare(a, b), which returns >0 when a > b."""
        best = _NOTHING
        for item in self:
            if best is _NOTHING or compare(item, best) > 0:
                best = item
        return None if best is _NOTHING else best

    def min_with(self, compare: Callable[[T, T], int]) -> Optional[T]:
        best = _NOTHING
        for item in self:
            if best is _NOTHING or compare(item, best) < 0:
                best = item
        return None if best is _NOTHING else best

    # --------- collections ----------
    def associate(self, transform: Callable[[T], Tuple[K, V]]) -> Dict[K, V]:
        """Build a dict from the (key, value) pairs returned by transform."""
        result = {}
        for item in self:
            key, value = transform(item)
            result[key] = value
        return result

    def associate_by(self,
                     key: Union[str, Callable[[T], K]],
                     value_transform: Optional[Callable[[T], V]] = None) -> Dict[K, Any]:
        """Build a dict keyed by key(item), or by the named field of each item.

        key may be a callable or a field name; field names are looked up as
        dict keys or attributes and may use dotted paths.  Values are the items
        themselves unless value_transform is given.  Later items overwrite
        earlier ones with the same key.
        """
        if callable(key):
            selector = key
        else:
            selector = lambda item: extract_property(item, key, fail_on_missing=True)
        transform = value_transform if value_transform is not None else (lambda item: item)
        result = {}
        for item in self:
            result[selector(item)] = transform(item)
        return result

    def group_by(self, key_selector: Callable[[T], K]) -> Dict[K, List[T]]:
        """Group elements by key; keys appear in order of first occurrence."""
        result = {}
        for item in self:
            result.setdefault(key_selector(item), []).append(item)
        return result

    def chunk(self, chunk_size: int) -> List[List[T]]:
        """Split into lists of chunk_size elements; the last one may be shorter.

        Raises:
            ValueError: if chunk_size is less than 1
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be > 0 but is {chunk_size}")
        result = []
        for item in self:
            if not result or len(result[-1]) == chunk_size:
                result.append([item])
            else:
                result[-1].append(item)
        return result

    def partition(self, predicate: Callable[[T], bool]) -> Partition:
        matching = []
        rest = []
        for item in self:
            if predicate(item):
                matching.append(item)
            else:
                rest.append(item)
        return Partition(true=matching, false=rest)

    def to_list(self) -> List[T]:
        return list(self)

    def to_set(self, target: Optional[Set[T]] = None) -> Set[T]:
        """Add every element to target (a new set by default) and return it."""
        result = set() if target is None else target
        for item in self:
            result.add(item)
        return result


def sequence_of(*items: T) -> Sequence[T]:
    return Sequence(items)


def empty_sequence() -> Sequence[Any]:
    return Sequence(())


def as_sequence(iterable: Iterable[T]) -> Sequence[T]:
    """Wrap an iterable in a Sequence.

    The sequence takes over the iterable's cursor: callers must not iterate
    the same iterator independently afterwards.

    Raises:
        TypeError: if iterable is not iterable
    """
    if not is_iterable(iterable):
        raise TypeError(f"Expected an iterable, got {type(iterable).__name__}")
    return Sequence(iterable)
