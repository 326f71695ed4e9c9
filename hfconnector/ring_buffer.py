"""Byte ring buffers: a plain one and a thread-safe blocking one."""

from __future__ import annotations

import threading


class BufferFullError(Exception):
    """Raised when data does not fit into a ring buffer."""


class RingBuffer:
    """Fixed-size FIFO of bytes holding ``2 ** order`` bytes."""

    def __init__(self, order: int) -> None:
        if order < 0:
            raise ValueError("order must not be negative")
        self._capacity = 1 << order
        self._data = bytearray(self._capacity)
        self._start = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def free(self) -> int:
        """Number of bytes that can still be written."""
        return self._capacity - self._count

    def capacity(self) -> int:
        """Total number of bytes the buffer can hold."""
        return self._capacity

    def write(self, data: bytes | bytearray | memoryview) -> None:
        """Append ``data``; raise BufferFullError if it does not fit."""
        chunk = bytes(data)
        size = len(chunk)
        if size > self.free():
            raise BufferFullError(
                f"cannot write {size} bytes, only {self.free()} free"
            )
        if not size:
            return
        end = (self._start + self._count) % self._capacity
        first = min(size, self._capacity - end)
        self._data[end:end + first] = chunk[:first]
        self._data[:size - first] = chunk[first:]
        self._count += size

    def peek(self, size: int) -> bytes:
        """Return the oldest ``size`` bytes without consuming them."""
        if size < 0 or size > self._count:
            raise ValueError(
                f"cannot read {size} bytes, only {self._count} available"
            )
        first = min(size, self._capacity - self._start)
        head = bytes(self._data[self._start:self._start + first])
        return head + bytes(self._data[:size - first])

    def read(self, size: int) -> bytes:
        """Remove and return the oldest ``size`` bytes."""
        data = self.peek(size)
        self._start = (self._start + size) % self._capacity
        self._count -= size
        return data

    def clear(self) -> None:
        """Drop all buffered bytes."""
        self._start = 0
        self._count = 0


class SharedBuffer:
    """Ring buffer shared between threads; reads and writes block until possible."""

    def __init__(self, order: int) -> None:
        self._ring = RingBuffer(order)
        self._cond = threading.Condition()

    def __len__(self) -> int:
        with self._cond:
            return len(self._ring)

    def read(self, size: int, timeout: float | None = None) -> bytes:
        """Wait until ``size`` bytes are buffered, then remove and return them."""
        if size < 0 or size > self._ring.capacity():
            raise ValueError(f"cannot ever read {size} bytes from this buffer")
        with self._cond:
            if not self._cond.wait_for(lambda: len(self._ring) >= size, timeout):
                raise TimeoutError(f"timed out waiting for {size} bytes")
            data = self._ring.read(size)
            self._cond.notify_all()
            return data

    def write(self, data: bytes | bytearray | memoryview, timeout: float | None = None) -> None:
        """Wait until there is room for ``data``, then append it."""
        chunk = bytes(data)
        if len(chunk) > self._ring.capacity():
            raise BufferFullError(
                f"{len(chunk)} bytes exceed buffer capacity {self._ring.capacity()}"
            )
        with self._cond:
            if not self._cond.wait_for(lambda: self._ring.free() >= len(chunk), timeout):
                raise TimeoutError(f"timed out waiting to write {len(chunk)} bytes")
            self._ring.write(chunk)
            self._cond.notify_all()

    def clear(self) -> None:
        """Drop all buffered bytes and wake waiting writers."""
        with self._cond:
            self._ring.clear()
            self._cond.notify_all()