"""Receive buffer for UART notification payloads."""

from threading import RLock
from typing import Optional

__all__ = ["ReceiveBuffer"]


class ReceiveBuffer:
    """
    FIFO store of received bytes with drain-style reads.

    Bytes are appended by the notification path and removed oldest-first by
    the read path. Every operation holds the owning session's lock.
    """

    def __init__(self, lock: Optional[RLock] = None):
        """
        Create an empty buffer.

        Parameters:
            lock (Optional[RLock]): Lock shared with the owning session; a private lock is created when omitted.
        """
        self._lock = lock if lock is not None else RLock()
        self._data = bytearray()

    def append(self, data: bytes) -> int:
        """
        Append ``data`` to the end of the buffer.

        Returns:
            int: Buffer length after the append.
        """
        with self._lock:
            self._data.extend(data)
            return len(self._data)

    def read(self, count: int) -> bytes:
        """
        Remove and return up to ``count`` of the oldest bytes.

        Fewer bytes are returned when fewer are buffered; a negative ``count`` behaves like zero.
        """
        with self._lock:
            size = max(0, min(count, len(self._data)))
            chunk = bytes(self._data[:size])
            del self._data[:size]
            return chunk

    def read_all(self) -> bytes:
        """Drain and return the entire buffer."""
        with self._lock:
            chunk = bytes(self._data)
            self._data.clear()
            return chunk

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
