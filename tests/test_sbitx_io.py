import threading

import pytest

from hfconnector.radio_cmds import Command, Response, build_command
from hfconnector.sbitx_io import ControllerConnection


def _serve_once(controller, reply, seen):
    def run():
        command = controller.take_command(timeout=5)
        seen.append(command)
        controller.respond(reply)

    worker = threading.Thread(target=run)
    worker.start()
    return worker


def test_command_and_response_exchange():
    controller = ControllerConnection()
    reply = build_command(Response.GET_FREQ_ACK, 7100000)
    seen = []
    worker = _serve_once(controller, reply, seen)
    result = controller.radio_cmd(build_command(Command.GET_FREQ))
    worker.join(5)
    assert seen == [build_command(Command.GET_FREQ)]
    assert result == reply


def test_no_response_returns_none():
    controller = ControllerConnection()
    assert controller.radio_cmd(build_command(Command.GET_MODE)) is None
    assert controller.take_command(timeout=0) == build_command(Command.GET_MODE)


def test_radio_reset_does_not_wait_for_response():
    controller = ControllerConnection()
    controller.respond(build_command(Response.ACK))
    assert controller.radio_cmd(build_command(Command.RADIO_RESET)) is None
    assert controller.take_command(timeout=0) == build_command(Command.RADIO_RESET)


def test_stale_response_is_discarded():
    controller = ControllerConnection()
    controller.respond(build_command(Response.ACK))
    assert controller.radio_cmd(build_command(Command.GET_AGC)) is None


def test_take_command_times_out():
    controller = ControllerConnection()
    assert controller.take_command(timeout=0.01) is None


def test_command_taken_only_once():
    controller = ControllerConnection()
    controller.radio_cmd(build_command(Command.PTT_OFF))
    assert controller.take_command(timeout=0) == build_command(Command.PTT_OFF)
    assert controller.take_command(timeout=0) is None


def test_wrong_sizes_raise():
    controller = ControllerConnection()
    with pytest.raises(ValueError):
        controller.radio_cmd(b"\x10")
    with pytest.raises(ValueError):
        controller.respond(b"\x00" * 6)