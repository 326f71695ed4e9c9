"""Command exchange with the sBitx radio controller."""

from __future__ import annotations

import threading

from hfconnector.radio_cmds import COMMAND_SIZE, Command

_FIRST_WAIT = 100e-6
_MAX_TRIES = 30


def _checked(data: bytes | bytearray) -> bytes:
    block = bytes(data)
    if len(block) != COMMAND_SIZE:
        raise ValueError(f"expected {COMMAND_SIZE} bytes, got {len(block)}")
    return block


class ControllerConnection:
    """Mailbox between the connector and the radio controller.

    The connector posts 5-byte commands with ``radio_cmd``; the controller
    side takes them with ``take_command`` and answers with ``respond``.
    """

    def __init__(self) -> None:
        self._response_lock = threading.Lock()
        self._cmd_cond = threading.Condition()
        self._service_command: bytes | None = None
        self._response = bytes(COMMAND_SIZE)
        self._response_ready = threading.Event()

    def radio_cmd(self, srv_cmd: bytes | bytearray) -> bytes | None:
        """Send a command and return the controller's 5-byte response.

        Returns None when no response arrives within a few milliseconds,
        and always for a radio reset, which gets no response.
        """
        command = _checked(srv_cmd)
        with self._response_lock:
            with self._cmd_cond:
                self._service_command = command
                self._response_ready.clear()
                self._cmd_cond.notify_all()

            if command[4] == Command.RADIO_RESET:
                return None

            wait = _FIRST_WAIT
            for tries in range(1, _MAX_TRIES + 1):
                if self._response_ready.wait(wait):
                    break
                if tries % 4 == 0:
                    wait *= 2

            if self._response_ready.is_set():
                self._response_ready.clear()
                return self._response
            return None

    def take_command(self, timeout: float | None = None) -> bytes | None:
        """Wait for the next posted command; None if none arrives in time."""
        with self._cmd_cond:
            if not self._cmd_cond.wait_for(lambda: self._service_command is not None, timeout):
                return None
            command = self._service_command
            self._service_command = None
            return command

    def respond(self, response: bytes | bytearray) -> None:
        """Publish the controller's 5-byte response to the waiting command."""
        self._response = _checked(response)
        self._response_ready.set()