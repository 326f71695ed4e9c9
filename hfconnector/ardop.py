"""ARDOP TNC support: control commands, data framing and the worker threads."""

from __future__ import annotations

import logging
import re
import socket
import struct
import threading
import time
from collections.abc import Iterator

from hfconnector.net import tcp_connect, tcp_read, tcp_write
from hfconnector.spool import HEADER, remove_all_msg_path_queue
from hfconnector.state import Connector

MAX_ARDOP_PACKET = 1024
MAX_ARDOP_BUFFER = 6000
MAX_ARDOP_PACKET_SAFE = 65535
MAX_ARQ_TIMEOUT = 240
ARQ_PREFIX = b"ARQ"

_LENGTH = struct.Struct(">H")
_BUFFER_RE = re.compile(r"BUFFER\s*(\d+)")
_POLL = 1.0
_FRAME_DELAY = 2.0

log = logging.getLogger(__name__)


def _command(text: str) -> bytes:
    return text.encode("utf-8") + b"\r"


def ardop_init_commands(connector: Connector) -> list[bytes]:
    """Commands that set up the TNC right after connecting to it."""
    config = connector.config
    return [
        _command("INITIALIZE"),
        _command(f"MYCALL {config.call_sign}"),
        _command(f"ARQTIMEOUT {min(config.timeout, MAX_ARQ_TIMEOUT)}"),
        _command("LISTEN True"),
        _command("BUSYDET 10"),
        _command("ENABLEOFDM True" if config.ofdm_mode else "ENABLEOFDM False"),
    ]


def _arqcall_command(connector: Connector) -> bytes:
    return _command(f"ARQCALL {connector.config.remote_call_sign} 5")


def ardop_frames(payload: bytes | bytearray) -> Iterator[bytes]:
    """Split a message into TNC data frames.

    The message travels with its 4-byte size header; the whole is cut into
    pieces of at most MAX_ARDOP_PACKET bytes, each preceded by a 2-byte
    big-endian length.
    """
    stream = HEADER.pack(len(payload)) + bytes(payload)
    for start in range(0, len(stream), MAX_ARDOP_PACKET):
        piece = stream[start:start + MAX_ARDOP_PACKET]
        yield _LENGTH.pack(len(piece)) + piece


def parse_ardop_packet(packet: bytes | bytearray) -> bytes | None:
    """Return the payload of an ARQ data packet, or None for any other packet."""
    data = bytes(packet)
    if len(data) > len(ARQ_PREFIX) and data.startswith(ARQ_PREFIX):
        return data[len(ARQ_PREFIX):]
    return None


def handle_ardop_control(connector: Connector, line: str) -> None:
    """Update the connector state from one line sent by the TNC."""
    if line.startswith(("DISCONNECTED", "NEWSTATE DISC")):
        log.info("TNC: %s", line)
        connector.connected = False
        connector.waiting_for_connection = False
    elif line.startswith("CONNECTED"):
        log.info("TNC: %s", line)
        connector.connected = True
        connector.waiting_for_connection = False
    elif line.startswith(("PTT", "INPUTPEAKS")):
        pass
    elif line.startswith("BUFFER"):
        match = _BUFFER_RE.match(line)
        if match:
            connector.buffer_size = int(match.group(1)) & 0xFFFFFFFF
        log.info("BUFFER: %d", connector.buffer_size)
        if (connector.buffer_size == 0 and len(connector.in_buffer) == 0
                and connector.connected):
            log.info("Messages successfully sent. Erasing messages...")
            remove_all_msg_path_queue(connector)
    else:
        log.info("%s", line)


def _control_lines(sock: socket.socket) -> Iterator[str]:
    pending = b""
    while True:
        chunk = sock.recv(1024)
        if not chunk:
            return
        pending += chunk
        *lines, pending = pending.split(b"\r")
        for line in lines:
            yield line.decode("utf-8", "replace")


def _control_rx(connector: Connector) -> None:
    try:
        for line in _control_lines(connector.control_socket):
            handle_ardop_control(connector, line)
    except OSError as exc:
        log.error("Control link error: %s", exc)
    log.warning("Leaving ARDOP control receiver.")
    connector.tcp_ret_ok = False


def _control_tx(connector: Connector) -> None:
    sock = connector.control_socket
    try:
        for command in ardop_init_commands(connector):
            tcp_write(sock, command)
        while connector.tcp_ret_ok:
            if (not connector.connected and len(connector.in_buffer) > 0
                    and not connector.waiting_for_connection):
                command = _arqcall_command(connector)
                tcp_write(sock, command)
                log.info("CONNECTING... %s", command.decode("utf-8").rstrip("\r"))
                connector.waiting_for_connection = True
            time.sleep(_POLL)
    except OSError as exc:
        log.error("Control link error: %s", exc)
        connector.tcp_ret_ok = False


def _read_while_up(connector: Connector, size: int) -> bytes | None:
    while connector.tcp_ret_ok:
        try:
            return connector.in_buffer.read(size, _POLL)
        except TimeoutError:
            continue
    return None


def _wait_for_tnc_buffer(connector: Connector) -> None:
    if connector.buffer_size > MAX_ARDOP_BUFFER:
        while (connector.buffer_size > 2 * MAX_ARDOP_BUFFER // 3
               and connector.tcp_ret_ok):
            time.sleep(_POLL)


def _wait_for_message(connector: Connector) -> bool:
    connector.enter_safe_state()
    try:
        while not (connector.connected and len(connector.in_buffer) > 0):
            if not connector.tcp_ret_ok:
                return False
            time.sleep(_POLL)
        return True
    finally:
        connector.leave_safe_state()


def _data_tx(connector: Connector) -> None:
    try:
        while connector.tcp_ret_ok:
            if not _wait_for_message(connector):
                break
            header = _read_while_up(connector, HEADER.size)
            if header is None:
                break
            (size,) = HEADER.unpack(header)
            payload = _read_while_up(connector, size)
            if payload is None:
                break
            remaining = size + HEADER.size
            for frame in ardop_frames(payload):
                _wait_for_tnc_buffer(connector)
                tcp_write(connector.data_socket, frame)
                remaining -= len(frame) - _LENGTH.size
                log.info("Tx bytes remaining: %d", remaining)
                time.sleep(_FRAME_DELAY)
    except OSError as exc:
        log.error("Data link error: %s", exc)
        connector.tcp_ret_ok = False
    log.warning("Leaving ARDOP data transmitter.")


def _data_rx(connector: Connector) -> None:
    try:
        while connector.tcp_ret_ok:
            connector.enter_safe_state()
            try:
                while not connector.connected:
                    if not connector.tcp_ret_ok:
                        return
                    time.sleep(_POLL)
                (size,) = _LENGTH.unpack(tcp_read(connector.data_socket, _LENGTH.size))
            finally:
                connector.leave_safe_state()

            log.info("Ardop Rcv Pkt: %d bytes.", size)
            packet = tcp_read(connector.data_socket, size)
            payload = parse_ardop_packet(packet)
            if payload is not None:
                connector.out_buffer.write(payload)
            else:
                log.info("Ardop non-payload data rx: %s",
                         packet.decode("utf-8", "replace"))
    except OSError as exc:
        log.error("Data link error: %s", exc)
        connector.tcp_ret_ok = False


def initialize_modem_ardop(connector: Connector) -> bool:
    """Connect to the ARDOP TNC and run its workers until the link goes down.

    Returns False if the TNC could not be reached, True once the workers end.
    """
    config = connector.config
    try:
        connector.control_socket = tcp_connect(config.ip_address, config.tcp_base_port)
        connector.data_socket = tcp_connect(config.ip_address, config.tcp_base_port + 1)
    except (OSError, ValueError) as exc:
        log.error("Connection to TNC failure: %s", exc)
        connector.tcp_ret_ok = False
        connector.close_sockets()
        return False

    workers = [
        threading.Thread(target=worker, args=(connector,), name=worker.__name__.strip("_"))
        for worker in (_control_rx, _control_tx, _data_tx, _data_rx)
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    return True