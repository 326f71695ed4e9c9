"""Keying the transmitter on and off."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hfconnector.radio_cmds import Command, build_command
from hfconnector.sbitx_io import ControllerConnection


@runtime_checkable
class PttRadio(Protocol):
    """A radio whose push-to-talk line can be switched."""

    def set_ptt(self, on: bool) -> None:
        """Switch the transmitter on or off."""


def _key(radio: ControllerConnection | PttRadio, on: bool) -> None:
    if isinstance(radio, ControllerConnection):
        radio.radio_cmd(build_command(Command.PTT_ON if on else Command.PTT_OFF))
    elif isinstance(radio, PttRadio):
        radio.set_ptt(on)
    else:
        raise TypeError(f"cannot key a {type(radio).__name__}")


def key_on(radio: ControllerConnection | PttRadio) -> None:
    """Put the radio into transmit."""
    _key(radio, True)


def key_off(radio: ControllerConnection | PttRadio) -> None:
    """Take the radio out of transmit."""
    _key(radio, False)