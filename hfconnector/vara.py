"""VARA TNC support: control commands and the worker threads."""

from __future__ import annotations

import logging
import re
import socket
import threading
import time
from collections.abc import Iterator

from hfconnector.common import SAFE_WORKERS, connection_timeout_loop
from hfconnector.net import tcp_connect, tcp_read, tcp_write
from hfconnector.radio_io import PttRadio, key_off, key_on
from hfconnector.sbitx_io import ControllerConnection
from hfconnector.spool import HEADER, remove_all_msg_path_queue
from hfconnector.state import Connector

MAX_MSG_QUEUE_SIZE = 5
BLOCK_SIZE = 64

_BUFFER_RE = re.compile(r"BUFFER\s*(\d+)")
_POLL = 1.0
_TICK = 1.0
_SPIN = 0.01

log = logging.getLogger(__name__)

Radio = ControllerConnection | PttRadio


def _command(text: str) -> bytes:
    return text.encode("utf-8") + b"\r"


def vara_init_commands(connector: Connector) -> list[bytes]:
    """Commands that set up the TNC right after connecting to it."""
    return [
        _command(f"MYCALL {connector.config.call_sign}"),
        _command("LISTEN ON"),
        _command("PUBLIC OFF"),
        _command("BW2300"),
        _command("P2P SESSION"),
    ]


def vara_connect_command(connector: Connector) -> bytes:
    """The command asking the TNC to call the remote station."""
    config = connector.config
    return _command(f"CONNECT {config.call_sign} {config.remote_call_sign}")


def handle_vara_control(connector: Connector, line: str,
                        radio: Radio | None = None) -> None:
    """Update the connector state from one line sent by the TNC.

    ``PTT ON`` and ``PTT OFF`` key ``radio`` when serial keying is configured.
    """
    if line == "DISCONNECTED":
        log.info("TNC: %s", line)
        connector.connected = False
        connector.waiting_for_connection = False
    elif line.startswith("CONNECTED"):
        log.info("TNC: %s", line)
        connector.connected = True
        connector.waiting_for_connection = False
    elif line.startswith("BUFFER"):
        match = _BUFFER_RE.match(line)
        if match is None:
            log.info("%s", line)
            return
        buf_size = int(match.group(1)) & 0xFFFFFFFF
        log.info("BUFFER: %d", buf_size)
        if buf_size != 0:
            connector.timeout_counter = 0
        if buf_size == 0 and len(connector.in_buffer) == 0 and connector.connected:
            log.info("Messages successfully sent. Erasing messages...")
            remove_all_msg_path_queue(connector)
    else:
        if connector.config.serial_keying and radio is not None:
            if line.startswith("PTT ON"):
                key_on(radio)
            if line.startswith("PTT OFF"):
                key_off(radio)
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


def _control_rx(connector: Connector, radio: Radio | None) -> None:
    try:
        for line in _control_lines(connector.control_socket):
            handle_vara_control(connector, line, radio)
    except OSError as exc:
        log.error("Control link error: %s", exc)
    connector.tcp_ret_ok = False


def _disconnect_on_timeout(connector: Connector) -> None:
    connector.connected = False
    while connector.safe_state != SAFE_WORKERS and connector.tcp_ret_ok:
        time.sleep(_SPIN)
    log.info("DISCONNECTING BY TIMEOUT...")
    tcp_write(connector.control_socket, _command("DISCONNECT"))


def _control_tx(connector: Connector) -> None:
    sock = connector.control_socket
    try:
        for command in vara_init_commands(connector):
            tcp_write(sock, command)
        while connector.tcp_ret_ok:
            if (not connector.connected and len(connector.in_buffer) > 0
                    and not connector.waiting_for_connection):
                command = vara_connect_command(connector)
                tcp_write(sock, command)
                log.info("CONNECTING... %s", command.decode("utf-8").rstrip("\r"))
                connector.waiting_for_connection = True
            if (connector.timeout_counter >= connector.config.timeout
                    and connector.connected):
                _disconnect_on_timeout(connector)
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
            connector.timeout_counter = 0
            header = _read_while_up(connector, HEADER.size)
            if header is None:
                break
            (size,) = HEADER.unpack(header)
            payload = _read_while_up(connector, size)
            if payload is None:
                break
            tcp_write(connector.data_socket, header)
            tcp_write(connector.data_socket, payload)
    except OSError as exc:
        log.error("Data link error: %s", exc)
        connector.tcp_ret_ok = False


def _data_rx(connector: Connector) -> None:
    sock = connector.data_socket
    try:
        while connector.tcp_ret_ok:
            connector.enter_safe_state()
            try:
                while not connector.connected:
                    if not connector.tcp_ret_ok:
                        return
                    time.sleep(_POLL)
                header = tcp_read(sock, HEADER.size)
            finally:
                connector.leave_safe_state()

            connector.out_buffer.write(header)
            connector.timeout_counter = 0
            (remaining,) = HEADER.unpack(header)
            while remaining:
                block = tcp_read(sock, min(BLOCK_SIZE, remaining))
                connector.out_buffer.write(block)
                remaining -= len(block)
                connector.timeout_counter = 0
    except OSError as exc:
        log.error("Data link error: %s", exc)
        connector.tcp_ret_ok = False


def initialize_modem_vara(connector: Connector, radio: Radio | None = None) -> bool:
    """Connect to the VARA TNC and run its workers until the link goes down.

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
        threading.Thread(target=_control_rx, args=(connector, radio), name="control_rx"),
        threading.Thread(target=_control_tx, args=(connector,), name="control_tx"),
        threading.Thread(target=_data_tx, args=(connector,), name="data_tx"),
        threading.Thread(target=_data_rx, args=(connector,), name="data_rx"),
        threading.Thread(target=connection_timeout_loop, args=(connector, _TICK),
                         name="connection_timeout"),
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    return True