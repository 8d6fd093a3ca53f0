"""Standard lazy stages for sequence pipelines.

Every stage here is a generator function wrapped with @stage: it pulls from
its input only as far as its consumer demands, and never reads past the
element it needs.
"""

from typing import Any, Annotated, Callable, Iterable, Iterator
import logging

from kollection.pipe.core import stage
from kollection.util.collections import SeenRecord
from kollection.util.iterators import get_iterator, is_atomic

logger = logging.getLogger(__name__)


@stage
def filterItems(items, predicate: Annotated[Callable[[Any], bool], "Items for which this returns True are kept."]):
    """Yields the items that satisfy predicate, in order."""
    for item in items:
        if predicate(item):
            yield item


@stage
def filterIndexed(items, predicate: Annotated[Callable[[int, Any], bool], "Called with (index, item)."]):
    """Like filterItems, but the predicate also receives the item's position in the input."""
    for index, item in enumerate(items):
        if predicate(index, item):
            yield item


@stage
def mapItems(items, transform: Annotated[Callable[[Any], Any], "Applied to every item."]):
    for item in items:
        yield transform(item)


@stage
def mapIndexed(items, transform: Annotated[Callable[[int, Any], Any], "Called with (index, item)."]):
    for index, item in enumerate(items):
        yield transform(index, item)


@stage
def flatMap(items, transform: Annotated[Callable[[Any], Iterable[Any]], "Returns an iterable of outputs for each item."]):
    """Yields every element of transform(item) for each item.

    The iterable returned for an item is consumed lazily, before the next
    input item is pulled.
    """
    for item in items:
        yield from transform(item)


@stage
def flatten(items):
    """Flatten nested iterables by one level.

    Iterables are expanded into their elements.  Strings and byte strings
    are yielded whole, as is anything that is not iterable.
    """
    for item in items:
        if is_atomic(item):
            yield item
        else:
            yield from item


@stage
def firstN(items, n: Annotated[int, "The number of items to yield."]):
    """Yields the first n items from the input stream.

    Stops as soon as the nth item has been yielded, so at most n items are
    ever pulled from the input.
    """
    if n <= 0:
        return
    for i, item in enumerate(items, start=1):
        yield item
        if i >= n:
            return


@stage
def takeWhile(items, predicate: Annotated[Callable[[Any], bool], "Iteration stops at the first item for which this is False."]):
    for item in items:
        if not predicate(item):
            return
        yield item


@stage
def skipN(items, n: Annotated[int, "The number of leading items to discard."]):
    """Discards the first n items (or all of them if there are fewer) and yields the rest."""
    for i, item in enumerate(items):
        if i >= n:
            yield item


@stage
def distinctBy(items, selector: Annotated[Callable[[Any], Any], "Computes the key used to detect duplicates."] = None):
    """Yields only the first item seen for each key.

    With no selector the items themselves are the keys.
    """
    seen = SeenRecord()
    for item in items:
        key = item if selector is None else selector(item)
        if seen.add(key):
            yield item


@stage
def onEach(items, action: Annotated[Callable[[Any], None], "Called with each item as it passes through."]):
    for item in items:
        action(item)
        yield item


@stage
def append(items, other: Annotated[Iterable[Any], "Items to yield after the input is exhausted."]):
    """Yields all input items followed by all items of other."""
    yield from items
    yield from other


@stage
def exclude(items, other: Annotated[Iterable[Any], "Items that must not appear in the output."]):
    """Yields the input items that do not occur in other.

    other is read completely the first time this stage is pulled.
    """
    excluded = SeenRecord(other)
    for item in items:
        if item not in excluded:
            yield item


@stage
def zipWith(items, other: Annotated[Iterator[Any], "Iterator paired element by element with the input."]):
    """Yields (item, other_item) tuples until either side runs out.

    other is pulled before the input, so a shorter other never causes an
    extra input item to be consumed.
    """
    items = get_iterator(items)
    while True:
        try:
            other_item = next(other)
        except StopIteration:
            return
        try:
            item = next(items)
        except StopIteration:
            return
        yield (item, other_item)


@stage
def reverse(items):
    """Buffers the whole input on the first pull, then yields it back to front."""
    buffered = list(items)
    logger.debug(f"Reversing {len(buffered)} buffered items")
    yield from reversed(buffered)
