"""Scan a buffered source until a predicate reports a boundary.

The predicate is called once per window with the text of the bytes
that are currently available.  It returns the index of the last byte
of the record within that window, or None to keep going.  Because a
window is whatever the source happens to have buffered, a record can
span many windows; the predicate is expected to carry its own state
between calls (counts, partial delimiters, etc).

A multi-byte character cut off at the end of a window is left in the
source and the predicate only sees the complete characters before it.
When nothing but such a fragment is buffered, the source is asked for
a larger window with fill(size).

Scanning is implemented as a generator.  Each step of the generator
runs one fill -> predicate -> append -> consume cycle.  The generator
stops at the first boundary, at EOF, or on error, and suspends when
the source would block or after a cycle that found no boundary.  All
state (the byte count and the source/predicate/output references) is
held by the ScanFuture so nothing is recomputed on resumption.

Example:
    with BufferedReader(f, 12) as reader:
        pred = predicates.CountDelimiter(b',', 4)
        out = bytearray()
        while reader.read_until_index_found(pred, out).wait():
            handle(bytes(out))
            del out[:]
"""
__all__ = [
    'PENDING',
    'DecodeError',
    'BusyError',
    'ScanFuture',
    'read_until_index_found',
]

import codecs
import select
import threading
import types

from . import predicates

class _Pending(object):
    """Sentinel returned by ScanFuture.poll() while not finished."""
    __slots__ = ()

    def __repr__(self):
        return 'PENDING'

    def __bool__(self):
        return False

PENDING = _Pending()

class DecodeError(ValueError):
    """A window could not be decoded for the predicate.

    The window is left in the source.  Nothing from it was appended.
    """
    def __init__(self, data, cause):
        super(DecodeError, self).__init__(
            'Window of {} bytes is not valid {}: {}'.format(
                len(data), cause.encoding, cause.reason))
        self.data = data
        self.cause = cause

class BusyError(RuntimeError):
    """An object is already in use by an unfinished scan."""


_lock = threading.Lock()
_borrowed = set()

def _key(item):
    # bound methods are created per attribute access, key on the instance
    if isinstance(item, types.MethodType):
        return id(item.__self__)
    return id(item)

def _acquire(items):
    """Mark items as in use.  Raise BusyError if any already are."""
    keys = frozenset(_key(item) for item in items)
    with _lock:
        if not _borrowed.isdisjoint(keys):
            raise BusyError(
                'source, predicate, or output is in use by another scan')
        _borrowed.update(keys)
    return keys

def _release(keys):
    with _lock:
        _borrowed.difference_update(keys)


class ScanFuture(object):
    """A single read_until_index_found call.

    The source, predicate, and output are held exclusively until the
    scan finishes, fails, or is closed.  Creating a second ScanFuture
    that shares any of them raises BusyError.

    Outcome:
        int: number of bytes appended to out, ending at the boundary.
            This can span several windows.
        None: EOF without a boundary.  The bytes read so far are in out
            and their count is in self.read.
        Exceptions from the source or predicate, DecodeError if a
        window is not valid text.

    An index past the end of the window is clamped so the whole window
    ends the record.  This silently tolerates predicates that miscount
    near window edges; raising instead may be preferable.

    Closing an unfinished scan does not roll anything back.  Consumed
    bytes are gone from the source and appended bytes stay in out, it
    is up to the caller to discard them.  Polling a closed scan raises
    ValueError.

    predicates.Predicate instances must be configured with the same
    encoding and a lossless error handler, since they re-encode the
    text to find byte offsets.
    """

    def __init__(self, source, predicate, out, encoding='utf-8', errors='strict'):
        if isinstance(predicate, predicates.Predicate):
            predicate.check(encoding, errors)
        self._decoder = codecs.getincrementaldecoder(encoding)(errors)
        self._keys = _acquire((source, predicate, out))
        self.source = source
        self.predicate = predicate
        self.out = out
        self.encoding = encoding
        self.errors = errors
        self.read = 0
        self.blocked = False
        self.done = False
        self.result = None
        self.error = None
        self._it = self._iter()

    def __enter__(self):
        return self
    def __exit__(self, tp, exc, tb):
        self.close()

    def __del__(self):
        self.close()

    def _release(self):
        keys = getattr(self, '_keys', None)
        if keys is not None:
            self._keys = None
            _release(keys)

    def _decode(self):
        """Fill and decode the complete characters of the window.

        Return (view, text) with view trimmed to the bytes text covers,
        or None if the source would block.
        """
        decoder = self._decoder
        need = 0
        while 1:
            view = self.source.fill(need) if need else self.source.fill()
            if view is None:
                return None
            decoder.reset()
            try:
                # no bytes added after asking for more means EOF
                text = decoder.decode(view, need > len(view))
            except UnicodeDecodeError as e:
                raise DecodeError(view.tobytes(), e)
            partial = len(decoder.getstate()[0])
            if not partial:
                return view, text
            elif partial < len(view):
                return view[:len(view)-partial], text
            need = len(view) + 1

    def _cycle(self):
        """Run one fill cycle.

        Return (done, used) or None if the source would block.
        """
        step = self._decode()
        if step is None:
            return None
        view, text = step
        idx = self.predicate(text)
        if idx is not None:
            if idx < 0:
                raise ValueError('Boundary index must be >= 0, got {}'.format(idx))
            if len(view):
                idx = min(idx, len(view) - 1)
                self.out.extend(view[:idx+1])
                used = idx + 1
            else:
                used = 0
            done = True
        else:
            self.out.extend(view)
            used = len(view)
            done = False
        del view
        self.source.consume(used)
        self.read += used
        return done, used

    def _iter(self):
        try:
            while 1:
                step = self._cycle()
                if step is None:
                    self.blocked = True
                    yield PENDING
                    continue
                self.blocked = False
                done, used = step
                if not used:
                    return None
                elif done:
                    read = self.read
                    self.read = 0
                    return read
                yield PENDING
        finally:
            self._release()

    def poll(self):
        """Run one cycle.

        Return PENDING if not finished, else the outcome.  Polling a
        finished scan returns the outcome again or re-raises its error.
        """
        if self.done:
            if self.error is not None:
                raise self.error
            return self.result
        try:
            next(self._it)
        except StopIteration as e:
            self.done = True
            self.result = e.value
            return self.result
        except Exception as e:
            self.done = True
            self.error = e
            raise
        return PENDING

    def __iter__(self):
        """Generator-based coroutine.

        Yield None while pending, return the outcome:
            n = yield from reader.read_until_index_found(pred, out)
        """
        while 1:
            result = self.poll()
            if result is PENDING:
                yield None
            else:
                return result

    def wait(self):
        """Poll until finished, return the outcome.

        select() is used to wait on the source whenever it would block,
        so the source must support fileno() if it is non-blocking.
        """
        result = self.poll()
        while result is PENDING:
            if self.blocked:
                select.select((self.source,), (), ())
            result = self.poll()
        return result

    def close(self):
        """Abandon the scan and release the borrowed objects.

        An unfinished scan has no outcome afterwards, poll() raises.
        """
        it = getattr(self, '_it', None)
        if it is not None:
            self._it = None
            it.close()
            if not self.done:
                self.done = True
                self.error = ValueError('Scan was closed before finishing')
        self._release()


def read_until_index_found(source, predicate, out, encoding='utf-8', errors='strict'):
    """Return a ScanFuture over any object with fill() and consume()."""
    return ScanFuture(source, predicate, out, encoding, errors)
