"""Read a stream as a sequence of predicate-delimited records.

This is the read_until_index_found loop wrapped up as a reader:
scan until a boundary, hand off the record, clear, repeat.  Bytes left
over at EOF with no boundary are emitted as a final record.

Neither readinto1 nor readinto handles exceptions.  Would-block and EINTR
are already handled by the buffered source.

A stateful predicate is reset after the trailing record so partial
state from the end of the stream does not leak into data appended
later (a tailed file).
"""
__all__ = ['RecordReader', 'record_iter']

import io
import traceback

from . import bases, scan

def _reset(predicate):
    reset = getattr(predicate, 'reset', None)
    if reset is not None:
        reset()

class RecordReader(bases.BufferedReader):
    """Read records.

    process: callable applied to each record (a bytearray) before it is
        appended to out.  Defaults to bytes.
    """
    def __init__(
            self, f, predicate, capacity=io.DEFAULT_BUFFER_SIZE,
            encoding='utf-8', errors='strict', process=bytes):
        super(RecordReader, self).__init__(f, capacity)
        self.predicate = predicate
        self.encoding = encoding
        self.errors = errors
        self.process = process
        self.record = bytearray()
        self.pending = None

    def readinto1(self, out):
        """Advance the current scan by one cycle.

        Return
        ======
        >0: a record of that many bytes was appended to out.
        0: progress, but no complete record yet.
        None: would block.
        -1: EOF.  Any trailing bytes were appended to out as a record.
        """
        if self.pending is None:
            self.pending = self.read_until_index_found(
                self.predicate, self.record, self.encoding, self.errors)
        fut = self.pending
        try:
            result = fut.poll()
        except Exception:
            self.pending = None
            raise
        if result is scan.PENDING:
            return None if fut.blocked else 0
        self.pending = None
        if self.record:
            out.append(self.process(self.record))
            del self.record[:]
        if result is None:
            _reset(self.predicate)
            return -1
        return result

    def readinto(self, out):
        """Call readinto1 until a record, EOF, or would block."""
        result = self.readinto1(out)
        while result == 0:
            result = self.readinto1(out)
        return result

    def read(self):
        """Same as readinto(), but return a new list.

        Also return the readinto result because there is no other way
        to tell a would-block from EOF.
        """
        L = []
        return L, self.readinto(L)

    def close(self):
        """Abandon any unfinished scan and close the file."""
        fut = getattr(self, 'pending', None)
        if fut is not None:
            self.pending = None
            fut.close()
        super(RecordReader, self).close()

def record_iter(
        f, predicate, out, verbose=False, capacity=io.DEFAULT_BUFFER_SIZE,
        encoding='utf-8', errors='strict', process=bytes):
    """Iterate on predicate-delimited records of a file.

    Records are appended to out.  Yield the size of each record, None
    when the file would block, and -1 once at EOF or error.
    verbose: print the traceback on error.
    """
    reader = bases.BufferedReader(f, capacity)
    record = bytearray()
    fut = None
    try:
        while 1:
            fut = reader.read_until_index_found(
                predicate, record, encoding, errors)
            for _ in fut:
                if fut.blocked:
                    yield None
            result = fut.result
            if record:
                out.append(process(record))
                del record[:]
            if result is None:
                _reset(predicate)
                yield -1
                return
            yield result
    except Exception:
        if verbose:
            traceback.print_exc()
        yield -1
    finally:
        if fut is not None:
            fut.close()
        reader.detach()
