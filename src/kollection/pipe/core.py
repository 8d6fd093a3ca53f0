"""Core definitions for lazy pipelines

This module contains the Operation and Pipeline classes that sequences are
built on, and the stage decorator used to write pipeline stages as generator
functions.

A pipeline is a singly linked chain of operations, newest first.  Adding an
operation is O(1) and never touches the source; nothing is pulled from the
source until the realized pipeline is iterated.
"""
import functools
import logging
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from kollection.util.config import get_settings
from kollection.util.iterators import get_iterator, trampoline

logger = logging.getLogger(__name__)

T = TypeVar('T')
U = TypeVar('U')

OperationWork = Callable[[Iterator[Any]], Iterator[Any]]


class Operation:
    """One stage of a pipeline.

    Attributes:
        work: Callable that receives the previous stage's lazy iterator and
              returns this stage's lazy iterator.
        previous_operation: The stage feeding this one, or None for the source stage.
    """

    def __init__(self, work: OperationWork, previous_operation: Optional['Operation'] = None):
        self.work = work
        self.previous_operation = previous_operation

    @property
    def name(self) -> str:
        return getattr(self.work, "__name__", self.work.__class__.__name__)

    def __repr__(self):
        return f"Operation({self.name})"


class Pipeline(Generic[T]):
    """A chain of lazy operations over a single source.

    Each operation draws from the output of the previous one.  Pipelines are
    never mutated: add_operation (or the | operator) returns a new pipeline
    whose last operation links back to this pipeline's last operation.

    The source's iterator is taken once, when the pipeline is built.  Every
    pipeline extended from it shares that one cursor, so realizing two of them
    divides the source's elements between them rather than replaying it.

    Examples:
        pipeline = Pipeline(range(10)) | basic.filterItems(lambda x: x % 2) | basic.mapItems(str)
        results = list(pipeline)   # ['1', '3', '5', '7', '9']
    """

    def __init__(self, source: Iterable[T] = None, *, _last_operation: Operation = None, _length: int = 0):
        if _last_operation is None:
            cursor = get_iterator([] if source is None else source)
            _last_operation = Operation(lambda _: cursor)
        self.last_operation = _last_operation
        self._length = _length

    def add_operation(self, work: OperationWork) -> 'Pipeline':
        """Return a new pipeline with work appended as its last stage."""
        return Pipeline(_last_operation=Operation(work, self.last_operation), _length=self._length + 1)

    def __or__(self, work: OperationWork) -> 'Pipeline':
        """Allows chaining operations using the | (or) operator."""
        return self.add_operation(work)

    def __len__(self):
        return self._length

    def operations(self) -> List[Operation]:
        """Operations from the source stage to the last one."""
        ops = []
        op = self.last_operation
        while op is not None:
            ops.append(op)
            op = op.previous_operation
        ops.reverse()
        return ops

    def realize(self, threshold: Optional[int] = None) -> Iterator[T]:
        """Return a lazy iterator over the pipeline's final outputs.

        Pipelines with at most ``threshold`` stages are composed by nesting
        the stage iterators directly.  Longer ones run on the greenlet
        trampoline so that pulling an element does not grow the call stack
        with the number of stages.

        Args:
            threshold: Stage count above which the trampoline is used.  Defaults
                to the trampoline_threshold setting.
        """
        if threshold is None:
            threshold = get_settings().trampoline_threshold

        source_op, *ops = self.operations()
        source = source_op.work(None)
        if not ops:
            logger.debug("Realizing passthrough pipeline")
            return source

        works = [op.work for op in ops]
        if len(works) > threshold:
            logger.debug(f"Realizing pipeline with {len(works)} stages on trampoline")
            return trampoline(source, works)

        logger.debug(f"Realizing pipeline: {' -> '.join(op.name for op in ops)}")
        current_iter = source
        for work in works:
            current_iter = work(current_iter)
        return current_iter

    def __iter__(self) -> Iterator[T]:
        return self.realize()

    def __repr__(self):
        return f"Pipeline({' | '.join(op.name for op in self.operations()[1:])})"


def stage(func: Callable[..., Iterator[U]]) -> Callable[..., OperationWork]:
    """Decorator to convert a generator function into a stage factory.

    The decorated function receives an iterator of input items followed by its
    own parameters and should yield output items.  Calling the factory binds
    the parameters and returns the work callable for Pipeline.add_operation.

        @stage
        def scale(items, multiplier: int):
            for item in items:
                yield item * multiplier

        pipeline = Pipeline([1, 2, 3]) | scale(multiplier=3)

    The returned work is named after the original function for logging.
    """
    @functools.wraps(func)
    def factory(*args, **kwargs) -> OperationWork:
        def work(items: Iterator[Any]) -> Iterator[U]:
            return func(items, *args, **kwargs)
        work.__name__ = func.__name__
        work._original_func = func
        return work

    factory._original_func = func
    return factory
