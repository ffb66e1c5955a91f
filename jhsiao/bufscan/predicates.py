"""Reusable boundary predicates.

A predicate is any callable taking the text of the current window and
returning the byte index of the record's last byte in that window, or
None if the record continues past it.  Predicates only ever see the
current window, so anything spanning windows must be tracked in the
predicate itself.

These predicates find byte offsets by re-encoding the text.  That only
reproduces the window when it was decoded with the same encoding and a
lossless error handler (strict or surrogateescape).  Scans check this.
"""
__all__ = ['Predicate', 'CountDelimiter', 'Delimiter', 'FixedLength']

import codecs

import numpy as np

LOSSLESS = frozenset(['strict', 'surrogateescape'])

class Predicate(object):
    """Base class for stateful predicates."""
    def __init__(self, encoding='utf-8', errors='strict'):
        if errors not in LOSSLESS:
            raise ValueError(
                'errors must be one of {}, got {!r}'.format(sorted(LOSSLESS), errors))
        self.encoding = encoding
        self.errors = errors

    def encode(self, text):
        return text.encode(self.encoding, self.errors)

    def check(self, encoding, errors):
        """Raise ValueError unless text decoded this way re-encodes exactly."""
        if (codecs.lookup(encoding).name != codecs.lookup(self.encoding).name
                or errors != self.errors):
            raise ValueError(
                'Predicate uses {}/{} but the scan decodes with {}/{}'.format(
                    self.encoding, self.errors, encoding, errors))

    def __call__(self, text):
        """Return boundary index within text or None."""
        raise NotImplementedError

    def reset(self):
        """Forget any state carried between windows."""
        pass

class CountDelimiter(Predicate):
    """Boundary at every `count`-th occurrence of a 1-byte delimiter.

    Occurrences are counted across windows, so with delim=b',' and
    count=4, b'a,b,' followed by b'c,d,e' ends the record at the comma
    after d.
    """
    def __init__(self, delim=b',', count=4, encoding='utf-8', errors='strict'):
        super(CountDelimiter, self).__init__(encoding, errors)
        if len(delim) != 1:
            raise ValueError('delim must be a single byte, got {!r}'.format(delim))
        if count < 1:
            raise ValueError('count must be >= 1, got {}'.format(count))
        self.byte = ord(delim)
        self.count = count
        self.seen = 0

    def __call__(self, text):
        data = np.frombuffer(self.encode(text), np.uint8)
        hits = np.flatnonzero(data == self.byte)
        need = self.count - self.seen
        if len(hits) >= need:
            self.seen = 0
            return int(hits[need-1])
        self.seen += len(hits)
        return None

    def reset(self):
        self.seen = 0

class Delimiter(Predicate):
    """Boundary at the end of the first occurrence of delim.

    delim may be several bytes long and may be split between windows.
    """
    def __init__(self, delim=b'\n', encoding='utf-8', errors='strict'):
        super(Delimiter, self).__init__(encoding, errors)
        if not delim:
            raise ValueError('delim must not be empty')
        self.delim = bytes(delim)
        self.tail = b''

    def __call__(self, text):
        data = self.encode(text)
        tail = self.tail
        joined = tail + data
        pos = joined.find(self.delim)
        if pos >= 0:
            self.tail = b''
            return pos + len(self.delim) - 1 - len(tail)
        keep = len(self.delim) - 1
        self.tail = joined[len(joined)-keep:] if keep else b''
        return None

    def reset(self):
        self.tail = b''

class FixedLength(Predicate):
    """Boundary after every `size` bytes."""
    def __init__(self, size, encoding='utf-8', errors='strict'):
        super(FixedLength, self).__init__(encoding, errors)
        if size < 1:
            raise ValueError('size must be >= 1, got {}'.format(size))
        self.size = size
        self.remain = size

    def __call__(self, text):
        n = len(self.encode(text))
        if n and n >= self.remain:
            idx = self.remain - 1
            self.remain = self.size
            return idx
        self.remain -= n
        return None

    def reset(self):
        self.remain = self.size
