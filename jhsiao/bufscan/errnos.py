"""Errno values that mean "try again" for a non-blocking read."""
__all__ = ['EAGAIN', 'EWOULDBLOCK', 'WOULDBLOCK', 'EINTR']
import errno
import platform

EINTR = getattr(errno, 'EINTR', 4)
EAGAIN = getattr(errno, 'EAGAIN', 11)
EWOULDBLOCK = getattr(
    errno,
    'EWOULDBLOCK',
    10035 if platform.system() == 'Windows' else 11)

WOULDBLOCK = frozenset([EAGAIN, EWOULDBLOCK])
