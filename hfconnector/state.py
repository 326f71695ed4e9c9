"""Connector configuration and shared run-time state."""

from __future__ import annotations

import socket
import threading
from dataclasses import dataclass

from hfconnector.ring_buffer import SharedBuffer

TIMEOUT_DEFAULT = 90
BUFFER_ORDER_DEFAULT = 26


@dataclass
class ConnectorConfig:
    """Settings given on the command line."""

    call_sign: str = ""
    remote_call_sign: str = ""
    tcp_base_port: int = 0
    ip_address: str = ""
    modem_type: str = ""
    radio_type: int | None = None
    serial_path: str = ""
    input_directory: str = ""
    output_directory: str = ""
    ofdm_mode: bool = True
    timeout: int = TIMEOUT_DEFAULT

    @property
    def serial_keying(self) -> bool:
        """True when a radio is configured for keying the transmitter."""
        return self.radio_type is not None


class Connector:
    """State shared by the spool, modem and control threads."""

    def __init__(self, config: ConnectorConfig | None = None,
                 buffer_order: int = BUFFER_ORDER_DEFAULT) -> None:
        self.config = config if config is not None else ConnectorConfig()
        self.in_buffer = SharedBuffer(buffer_order)
        self.out_buffer = SharedBuffer(buffer_order)

        self.tcp_ret_ok = True
        self.connected = False
        self.waiting_for_connection = False
        self.timeout_counter = 0
        self.safe_state = 0
        self.buffer_size = 0

        self.data_socket: socket.socket | None = None
        self.control_socket: socket.socket | None = None

        self.msg_path_queue: list[str] = []
        self.msg_path_queue_lock = threading.Lock()
        self._safe_lock = threading.Lock()

    def enter_safe_state(self) -> None:
        """Mark one more worker as idle in a state where disconnecting is safe."""
        with self._safe_lock:
            self.safe_state += 1

    def leave_safe_state(self) -> None:
        """Mark one worker as leaving the safe state."""
        with self._safe_lock:
            self.safe_state -= 1

    def close_sockets(self) -> None:
        """Shut down and close the data and control sockets, if open."""
        for name in ("data_socket", "control_socket"):
            sock = getattr(self, name)
            if sock is None:
                continue
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()
            setattr(self, name, None)