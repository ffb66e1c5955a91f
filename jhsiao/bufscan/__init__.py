"""Scan buffered byte streams with stateful boundary predicates.

bases: buffered sources with a fill()/consume() interface.
scan: read_until_index_found and the ScanFuture that drives it.
predicates: ready-made predicates (delimiters, counts, fixed sizes).
records: read a stream as a sequence of records.

Scans are generator-based and compatible with non-blocking io: a scan
that would block returns PENDING from poll() and picks up where it left
off on the next poll().

NOTE: timeouts are not handled.  Files should either be blocking or
fully non-blocking (timeout 0).
"""
