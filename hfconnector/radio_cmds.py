"""Command and response codes of the HERMES transceiver controller."""

from __future__ import annotations

from enum import IntEnum

COMMAND_SIZE = 5


class Command(IntEnum):
    """Commands sent to the radio controller (in byte 4 of a command)."""

    GET_FREQ = 0x01
    SET_FREQ = 0x02
    GET_MODE = 0x03
    SET_MODE = 0x04
    SET_VOLUME = 0x05
    GET_VOLUME = 0x06
    SET_AGC = 0x07
    GET_AGC = 0x08
    SET_COMPRESSOR = 0x09
    GET_COMPRESSOR = 0x0A
    SET_KNOBS = 0x0B
    GET_KNOBS = 0x0C
    SET_LPF = 0x0D
    GET_LPF = 0x0F
    PTT_ON = 0x10
    PTT_OFF = 0x11
    GET_LED_STATUS = 0x12
    SET_LED_STATUS = 0x13
    GET_CONNECTED_STATUS = 0x14
    SET_CONNECTED_STATUS = 0x15
    GET_PROFILE = 0x16
    SET_PROFILE = 0x17
    GET_PROTECTION_STATUS = 0x18
    RESET_PROTECTION = 0x19
    GET_TXRX_STATUS = 0x1A
    GET_BFO = 0x1B
    SET_BFO = 0x1C
    GET_FWD = 0x1D
    GET_REF = 0x1F
    SET_SERIAL = 0x20
    GET_SERIAL = 0x21
    SET_REF_THRESHOLD = 0x22
    GET_REF_THRESHOLD = 0x23
    SET_RADIO_DEFAULTS = 0x24
    RESTORE_RADIO_DEFAULTS = 0x25
    RADIO_RESET = 0x26
    SET_STEPHZ = 0x27
    GET_STEPHZ = 0x28
    SET_TONE = 0x29
    GET_TONE = 0x2A
    GET_MASTERCAL = 0x2B
    SET_MASTERCAL = 0x2C
    GPS_CALIBRATE = 0x2D
    GET_STATUS = 0x2E
    TIMEOUT_RESET = 0x2F


class Response(IntEnum):
    """Response codes returned by the radio controller."""

    TIMEOUT = 0x00
    GET_FREQ_ACK = 0x01
    GET_BFO_ACK = 0x02
    GET_FWD_ACK = 0x03
    GET_REF_ACK = 0x04
    GET_SERIAL_ACK = 0x05
    GET_REF_THRESHOLD_ACK = 0x06
    GET_STEPHZ_ACK = 0x07
    GET_VOLUME_ACK = 0x08
    GET_TONE_ACK = 0x09
    GET_AGC = 0x0A
    GET_COMPRESSOR = 0x0B
    GET_KNOBS = 0x0C
    GET_LPF = 0x0D
    GET_PROFILE = 0x0F
    ALERT_PROTECTION_ON = 0x10
    GET_STATUS_ACK = 0x11
    GPS_NOT_PRESENT = 0x12
    GET_MASTERCAL_ACK = 0x13
    ACK = 0x14
    PTT_ON_NACK = 0x15
    PTT_OFF_NACK = 0x16
    GET_MODE_USB = 0x17
    GET_MODE_LSB = 0x18
    GET_MODE_CW = 0x19
    GET_TXRX_INTX = 0x1A
    GET_TXRX_INRX = 0x1B
    GET_PROTECTION_ON = 0x1C
    GET_PROTECTION_OFF = 0x1D
    GET_LED_STATUS_ON = 0x1E
    GET_LED_STATUS_OFF = 0x1F
    GET_CONNECTED_STATUS_ON = 0x20
    GET_CONNECTED_STATUS_OFF = 0x21
    WRONG_COMMAND = 0x22


def build_command(command: int, argument: int = 0) -> bytes:
    """Build a 5-byte command: little-endian 32-bit argument, then the command byte."""
    if not 0 <= command <= 0xFF:
        raise ValueError(f"command code out of range: {command}")
    if not 0 <= argument <= 0xFFFFFFFF:
        raise ValueError(f"argument out of range: {argument}")
    return argument.to_bytes(4, "little") + bytes([command])


def is_short_response(code: int) -> bool:
    """Tell whether a response code is a 1-byte response (as opposed to 5 bytes)."""
    response = Response(code)
    return Response.ACK <= response <= Response.WRONG_COMMAND