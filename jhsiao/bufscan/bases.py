"""Buffered byte sources.

A source exposes two methods to the scanner:

fill(size=1): return a memoryview of unconsumed bytes.  None implies the
    underlying read would block.  An empty view implies EOF.  size asks
    for at least that many bytes, reading more if needed.  Scanners only
    pass it to complete a multi-byte character.
consume(n): discard the first n bytes of the last view.

The view returned by fill() is only valid until the next consume().
Any object with these two methods can be scanned.  BufferedReader
implements them over a raw file-like object that supports readinto()
and works in both blocking and non-blocking mode.
"""
__all__ = [
    'FileWrapper',
    'BufferedReader',
]

import io

from . import errnos, scan

class FileWrapper(object):
    def __init__(self, f):
        self.f = f

    def __enter__(self):
        return self
    def __exit__(self, tp, exc, tb):
        self.close()

    def __del__(self):
        self.close()

    def fileno(self):
        return self.f.fileno()

    def detach(self):
        """Unwrap the file and return it.

        This instance should no longer be used.
        """
        ret = self.f
        self.f = None
        return ret

    def close(self):
        """Close the underlying file."""
        if getattr(self, 'f', None) is not None:
            self.detach().close()

class BufferedReader(FileWrapper):
    """Expose a fixed-size window over a file.

    At most one readinto() call is made per fill(), and only when every
    previously filled byte has been consumed.  The window size is
    therefore decided by the file and `capacity`, not by the caller.
    """

    def __init__(self, f, capacity=io.DEFAULT_BUFFER_SIZE):
        """Initialize a BufferedReader.

        f: the file to wrap.  Should support readinto() or readinto1().
        capacity: int, maximum size of a single window.
        """
        super(BufferedReader, self).__init__(f)
        if capacity < 1:
            raise ValueError('capacity must be >= 1, got {}'.format(capacity))
        self.buf = bytearray(capacity)
        self.view = memoryview(self.buf)
        self.start = self.stop = 0
        self._readinto = getattr(self.f, 'readinto1', self.f.readinto)

    def __len__(self):
        """Number of filled but unconsumed bytes."""
        return self.stop - self.start

    def _shift(self, size):
        """Move unconsumed bytes to the front, growing to size if needed."""
        n = self.stop - self.start
        if size > len(self.buf):
            nbuf = bytearray(size)
            nbuf[:n] = self.view[self.start:self.stop]
            self.buf = nbuf
            self.view = memoryview(nbuf)
        else:
            self.view[:n] = self.view[self.start:self.stop]
        self.start = 0
        self.stop = n

    def fill(self, size=1):
        """Return a view of unconsumed bytes.

        size: int, read more if fewer than this many bytes are
            buffered.  The buffer grows if it is smaller than size.
        Otherwise buffered bytes are returned as-is.  At most one read.
        None: would block.
        The view can still be shorter than size after a short read.
        If the read returned no bytes it is EOF, an empty view when
        nothing was buffered.  A later fill() will try the file again.
        Other EnvironmentErrors propagate.
        """
        if self.stop - self.start >= max(size, 1):
            return self.view[self.start:self.stop]
        if self.start == self.stop:
            self.start = self.stop = 0
            if size > len(self.buf):
                self._shift(size)
        elif self.start + size > len(self.buf):
            self._shift(size)
        while 1:
            try:
                amt = self._readinto(self.view[self.stop:])
            except EnvironmentError as e:
                if e.errno in errnos.WOULDBLOCK:
                    return None
                elif e.errno != errnos.EINTR:
                    raise
            else:
                break
        if amt is None:
            return None
        self.stop += amt
        return self.view[self.start:self.stop]

    def consume(self, n):
        """Discard the first n bytes of the last fill() view."""
        if n < 0 or n > self.stop - self.start:
            raise ValueError(
                'Cannot consume {} bytes, {} available'.format(
                    n, self.stop - self.start))
        self.start += n
        if self.start == self.stop:
            self.start = self.stop = 0

    def read_until_index_found(
            self, predicate, out, encoding='utf-8', errors='strict'):
        """Append bytes to out until predicate returns an index.

        predicate: callable, receives the text of each window and
            returns the index of the boundary within it or None.
        out: bytearray, receives bytes up to and including the
            boundary.  Existing contents are kept.

        Return a scan.ScanFuture.  Its outcome is the number of bytes
        appended or None if EOF was reached without a boundary.
        """
        return scan.ScanFuture(self, predicate, out, encoding, errors)
