"""TCP helpers for talking to a TNC."""

from __future__ import annotations

import ipaddress
import socket

TCP_BLOCK = 512

_BROADCAST = ipaddress.IPv4Address("255.255.255.255")


class ConnectionClosedError(ConnectionError):
    """Raised when the peer closes the connection during a read."""


def tcp_connect(ip: str, port: int) -> socket.socket:
    """Open a TCP connection to an IPv4 address and return the socket."""
    try:
        address = ipaddress.IPv4Address(ip)
    except ValueError as exc:
        raise ValueError(f"Invalid IP address: {ip!r}") from exc
    if address == _BROADCAST:
        raise ValueError(f"Invalid IP address: {ip!r}")
    return socket.create_connection((str(address), port))


def tcp_read(sock: socket.socket, size: int) -> bytes:
    """Read exactly ``size`` bytes, in blocks of at most TCP_BLOCK."""
    chunks = []
    received = 0
    while received < size:
        chunk = sock.recv(min(TCP_BLOCK, size - received))
        if not chunk:
            raise ConnectionClosedError("tcp_read: socket read error")
        chunks.append(chunk)
        received += len(chunk)
    return b"".join(chunks)


def tcp_write(sock: socket.socket, data: bytes | bytearray | memoryview) -> None:
    """Send all of ``data``."""
    sock.sendall(data)