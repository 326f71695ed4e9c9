"""Spool directories: turn message files into buffer frames and back."""

from __future__ import annotations

import logging
import os
import struct
import threading

from hfconnector.state import Connector

BUFFER_SIZE = 8192
BLOCK_SIZE = 64
HEADER = struct.Struct("<I")
_OUTPUT_POLL = 0.5

log = logging.getLogger(__name__)


def queue_msg_path(msg_path: str, connector: Connector) -> None:
    """Remember a sent message file so it can be deleted once delivery is confirmed."""
    with connector.msg_path_queue_lock:
        connector.msg_path_queue.append(os.fspath(msg_path))


def remove_all_msg_path_queue(connector: Connector) -> None:
    """Delete every queued message file and empty the queue."""
    with connector.msg_path_queue_lock:
        for path in connector.msg_path_queue:
            try:
                os.unlink(path)
            except OSError:
                log.error("File %s could not be deleted!", path)
        connector.msg_path_queue.clear()


def write_message_to_buffer(msg_path: str, connector: Connector) -> None:
    """Frame a message file into the connector's input buffer and queue its path.

    The frame is a little-endian 32-bit size, the file's base name ending
    in a newline, then the file's contents; the size counts name and contents.
    """
    path = os.fspath(msg_path)
    with open(path, "rb") as handle:
        payload = handle.read()

    base_name = os.path.basename(path)
    name = os.fsencode(base_name) + b"\n"
    log.info("Loaded message %s with payload size %d.", base_name, len(payload))

    buffer = connector.in_buffer
    buffer.write(HEADER.pack(len(payload) + len(name)))
    buffer.write(name)
    for start in range(0, len(payload), BUFFER_SIZE):
        buffer.write(payload[start:start + BUFFER_SIZE])

    queue_msg_path(path, connector)


def _read_message(connector: Connector, header_timeout: float | None) -> str:
    out = connector.out_buffer
    (msg_size,) = HEADER.unpack(out.read(HEADER.size, header_timeout))

    name = bytearray()
    while not name.endswith(b"\n"):
        name += out.read(1)

    remaining = msg_size - len(name)
    if remaining < 0:
        raise ValueError(f"malformed message header: size {msg_size} is shorter than its name")

    directory = os.fsencode(connector.config.output_directory)
    path = os.fsdecode(os.path.join(directory, bytes(name[:-1])))
    log.info("Incoming message %s with payload size %d.", os.path.basename(path), remaining)

    with open(path, "wb") as handle:
        while remaining:
            block = out.read(min(BLOCK_SIZE, remaining))
            handle.write(block)
            handle.flush()
            remaining -= len(block)
    return path


def read_message_from_buffer(connector: Connector) -> str:
    """Read one framed message from the output buffer into the output directory.

    Blocks until a whole message has arrived and returns the written path.
    """
    return _read_message(connector, None)


def _scan(directory: str) -> dict[str, tuple[int, int]]:
    found = {}
    with os.scandir(directory) as entries:
        for entry in sorted(entries, key=lambda item: item.name):
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                stat = entry.stat(follow_symlinks=False)
            except FileNotFoundError:
                continue
            found[entry.path] = (stat.st_mtime_ns, stat.st_size)
    return found


def _send(path: str, connector: Connector) -> None:
    try:
        write_message_to_buffer(path, connector)
    except OSError as exc:
        log.error("Message %s could not be opened: %s", path, exc)


def _require_directory(directory: str) -> None:
    if not os.path.isdir(directory):
        raise FileNotFoundError(f'Directory "{directory}" could not be opened.')


def spool_input_directory(connector: Connector,
                          stop_event: threading.Event | None = None,
                          poll_interval: float = 1.0) -> None:
    """Send every file in the input directory, then keep sending new or rewritten ones.

    A file found later is sent once it has stayed unchanged for one poll,
    so that files still being written are not sent half-way.
    """
    directory = connector.config.input_directory
    _require_directory(directory)

    sent = _scan(directory)
    for path in sent:
        _send(path, connector)
    seen = dict(sent)

    stop = stop_event if stop_event is not None else threading.Event()
    while not stop.wait(poll_interval):
        current = _scan(directory)
        for path, signature in current.items():
            if sent.get(path) != signature and seen.get(path) == signature:
                _send(path, connector)
                sent[path] = signature
        sent = {path: sig for path, sig in sent.items() if path in current}
        seen = current


def spool_output_directory(connector: Connector,
                           stop_event: threading.Event | None = None) -> None:
    """Write incoming messages to the output directory until stopped."""
    _require_directory(connector.config.output_directory)

    stop = stop_event if stop_event is not None else threading.Event()
    while not stop.is_set():
        try:
            _read_message(connector, _OUTPUT_POLL)
        except TimeoutError:
            continue
        except OSError as exc:
            log.error("Incoming message could not be written: %s", exc)