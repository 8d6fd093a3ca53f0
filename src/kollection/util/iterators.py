from typing import Any, Callable, Iterable, Iterator, List

from greenlet import greenlet

_NEED = "need_item"
_ITEM = "item"
_OUTPUT = "output"
_END = "end"

ATOMIC_TYPES = (str, bytes, bytearray)


def is_iterable(obj: Any) -> bool:
    """Return True if obj can hand out an iterator."""
    if obj is None:
        return False
    try:
        iter(obj)
    except TypeError:
        return False
    return True


def is_atomic(obj: Any) -> bool:
    """Return True if obj should be treated as a single element.

    Strings and byte strings are iterable but are never expanded element by
    element when flattening or when passed to plus/minus.
    """
    return isinstance(obj, ATOMIC_TYPES) or not is_iterable(obj)


def get_iterator(iterable: Iterable[Any]) -> Iterator[Any]:
    return iter(iterable)


def contains(iterable: Iterable[Any], element: Any) -> bool:
    for item in iterable:
        if item == element:
            return True
    return False


class Trampoline:
    """Runs a chain of stage works over a source without nesting their frames.

    source: the source iterator
    works:  stage callables, innermost first. Each is called exactly once with
            an iterator over its predecessor's outputs and returns an iterator.

    Behavior:
      - Every stage runs in its own greenlet. When a stage pulls from its
        input, its stream switches back to the driver, which resumes the
        predecessor (or reads the source) and hands the value back.
      - The driver is a flat loop, so producing one element costs O(stages)
        switches but constant call-stack depth.
      - Values are only produced on demand; the source is never read ahead.
    """

    def __init__(self, source: Iterator[Any], works: List[Callable[[Iterator[Any]], Iterator[Any]]]):
        self._source = source
        self._works = list(works)
        self._greenlets: List[greenlet] = [None] * len(self._works)
        self._exhausted = [False] * len(self._works)
        self._source_exhausted = False
        self._finished = False
        self.driver = None

    def __iter__(self):
        return self

    def __next__(self):
        if self._finished:
            raise StopIteration
        try:
            msg_type, value = self._pull()
        except BaseException:
            self._finished = True
            raise
        if msg_type == _END:
            self._finished = True
            raise StopIteration
        return value

    def _stream(self):
        trampoline = self

        class UpstreamStream:
            def __iter__(self):
                return self

            def __next__(self):
                # Ask the driver for the next item from the previous stage
                msg_type, value = trampoline.driver.switch((_NEED, None))
                if msg_type == _ITEM:
                    return value
                elif msg_type == _END:
                    raise StopIteration
                else:
                    raise RuntimeError(f"Unexpected message to stream: {msg_type}")

        return UpstreamStream()

    def _runner(self, index: int):
        work = self._works[index]

        def run(_=None):
            for out in work(self._stream()):
                self.driver.switch((_OUTPUT, out))
            return (_END, None)

        return run

    def _step(self, index: int, message):
        """Resume stage index (or read the source when index is -1)."""
        if index < 0:
            if self._source_exhausted:
                return (_END, None)
            try:
                return (_OUTPUT, next(self._source))
            except StopIteration:
                self._source_exhausted = True
                return (_END, None)

        if self._exhausted[index]:
            return (_END, None)
        gl = self._greenlets[index]
        if gl is None:
            gl = greenlet(self._runner(index))
            self._greenlets[index] = gl
        gl.parent = self.driver
        return gl.switch(message)

    def _pull(self):
        self.driver = greenlet.getcurrent()
        waiting = []
        index = len(self._works) - 1
        message = None

        while True:
            msg_type, payload = self._step(index, message)

            if msg_type == _NEED:
                # Stage wants input; go one stage closer to the source
                waiting.append(index)
                index -= 1
                message = None

            elif msg_type == _OUTPUT:
                if not waiting:
                    return (_OUTPUT, payload)
                index = waiting.pop()
                message = (_ITEM, payload)

            elif msg_type == _END:
                if index >= 0:
                    self._exhausted[index] = True
                if not waiting:
                    return (_END, None)
                index = waiting.pop()
                message = (_END, None)

            else:
                raise RuntimeError(f"Unexpected message from stage: {msg_type}")


def trampoline(source: Iterable[Any], works: List[Callable[[Iterator[Any]], Iterator[Any]]]) -> Iterator[Any]:
    """Realize works over source with constant stack depth. See Trampoline."""
    if not works:
        return iter(source)
    return Trampoline(iter(source), works)
