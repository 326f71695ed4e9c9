import socket
import threading
import time

import pytest

from hfconnector import ardop
from hfconnector.ardop import (
    MAX_ARDOP_PACKET,
    ardop_frames,
    ardop_init_commands,
    handle_ardop_control,
    initialize_modem_ardop,
    parse_ardop_packet,
)
from hfconnector.spool import HEADER, queue_msg_path
from hfconnector.state import Connector, ConnectorConfig


def _connector(**overrides):
    settings = dict(call_sign="PU2HFF", remote_call_sign="PP2UIT",
                    ip_address="127.0.0.1", timeout=90)
    settings.update(overrides)
    return Connector(ConnectorConfig(**settings), buffer_order=16)


def _listen_pair():
    for _ in range(100):
        first = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        second = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        first.bind(("127.0.0.1", 0))
        port = first.getsockname()[1]
        try:
            second.bind(("127.0.0.1", port + 1))
        except (OSError, OverflowError):
            first.close()
            second.close()
            continue
        first.listen(1)
        second.listen(1)
        return first, second, port
    raise RuntimeError("no pair of consecutive free ports")


def _recv_until(sock, marker):
    sock.settimeout(5)
    data = b""
    while marker not in data:
        chunk = sock.recv(1024)
        if not chunk:
            break
        data += chunk
    return data


def _recv_exact(sock, size):
    sock.settimeout(5)
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


def _run_in_thread(func, *args):
    result = {}
    thread = threading.Thread(target=lambda: result.setdefault("value", func(*args)))
    thread.start()
    return thread, result


def test_init_commands_default():
    connector = _connector()
    assert ardop_init_commands(connector) == [
        b"INITIALIZE\r",
        b"MYCALL PU2HFF\r",
        b"ARQTIMEOUT 90\r",
        b"LISTEN True\r",
        b"BUSYDET 10\r",
        b"ENABLEOFDM True\r",
    ]


def test_init_commands_cap_timeout_and_disable_ofdm():
    connector = _connector(timeout=1000, ofdm_mode=False)
    commands = ardop_init_commands(connector)
    assert commands[2] == b"ARQTIMEOUT 240\r"
    assert commands[-1] == b"ENABLEOFDM False\r"


def test_single_frame_for_small_payload():
    frames = list(ardop_frames(b"hello"))
    assert len(frames) == 1
    assert frames[0] == len(HEADER.pack(5) + b"hello").to_bytes(2, "big") + HEADER.pack(5) + b"hello"


def test_empty_payload_still_sends_header():
    frames = list(ardop_frames(b""))
    assert frames == [HEADER.size.to_bytes(2, "big") + HEADER.pack(0)]


@pytest.mark.parametrize("size", [MAX_ARDOP_PACKET - 4, MAX_ARDOP_PACKET - 3, 3000, 5000])
def test_frames_reassemble_to_header_and_payload(size):
    payload = bytes(range(256)) * (size // 256) + bytes(size % 256)
    frames = list(ardop_frames(payload))
    bodies = []
    for frame in frames:
        length = int.from_bytes(frame[:2], "big")
        assert length == len(frame) - 2
        assert 0 < length <= MAX_ARDOP_PACKET
        bodies.append(frame[2:])
    assert all(len(body) == MAX_ARDOP_PACKET for body in bodies[:-1])
    assert b"".join(bodies) == HEADER.pack(size) + payload


def test_parse_arq_packet():
    assert parse_ardop_packet(b"ARQdata") == b"data"


@pytest.mark.parametrize("packet", [b"ARQ", b"AR", b"FECdata", b""])
def test_parse_non_arq_packet(packet):
    assert parse_ardop_packet(packet) is None


def test_connected_and_disconnected_lines():
    connector = _connector()
    connector.waiting_for_connection = True
    handle_ardop_control(connector, "CONNECTED PP2UIT 500")
    assert (connector.connected, connector.waiting_for_connection) == (True, False)
    handle_ardop_control(connector, "DISCONNECTED")
    assert (connector.connected, connector.waiting_for_connection) == (False, False)


def test_newstate_disc_disconnects():
    connector = _connector()
    connector.connected = True
    connector.waiting_for_connection = True
    handle_ardop_control(connector, "NEWSTATE DISC")
    assert connector.connected is False
    assert connector.waiting_for_connection is False


def test_ptt_and_inputpeaks_leave_state_alone():
    connector = _connector()
    connector.connected = True
    connector.buffer_size = 7
    handle_ardop_control(connector, "PTT TRUE")
    handle_ardop_control(connector, "INPUTPEAKS 1 2")
    assert connector.connected is True
    assert connector.buffer_size == 7


def test_buffer_line_sets_buffer_size():
    connector = _connector()
    handle_ardop_control(connector, "BUFFER 123")
    assert connector.buffer_size == 123


def test_empty_tnc_buffer_erases_sent_messages(tmp_path):
    connector = _connector()
    message = tmp_path / "msg"
    message.write_bytes(b"x")
    queue_msg_path(str(message), connector)
    connector.connected = True
    connector.buffer_size = 10
    handle_ardop_control(connector, "BUFFER 0")
    assert not message.exists()
    assert connector.msg_path_queue == []


def test_empty_tnc_buffer_keeps_messages_when_not_connected(tmp_path):
    connector = _connector()
    message = tmp_path / "msg"
    message.write_bytes(b"x")
    queue_msg_path(str(message), connector)
    handle_ardop_control(connector, "BUFFER 0")
    assert message.exists()
    assert connector.msg_path_queue == [str(message)]


def test_empty_tnc_buffer_keeps_messages_while_data_pending(tmp_path):
    connector = _connector()
    message = tmp_path / "msg"
    message.write_bytes(b"x")
    queue_msg_path(str(message), connector)
    connector.connected = True
    connector.in_buffer.write(b"pending")
    handle_ardop_control(connector, "BUFFER 0")
    assert message.exists()


def test_initialize_fails_without_tnc():
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    connector = _connector(tcp_base_port=port)
    assert initialize_modem_ardop(connector) is False
    assert connector.tcp_ret_ok is False


def test_initialize_rejects_invalid_address():
    connector = _connector(ip_address="999.1.1.1", tcp_base_port=8515)
    assert initialize_modem_ardop(connector) is False


def test_initialize_configures_tnc_and_receives_data(monkeypatch):
    monkeypatch.setattr(ardop, "_POLL", 0.02)
    control_listener, data_listener, port = _listen_pair()
    connector = _connector(tcp_base_port=port)
    thread, result = _run_in_thread(initialize_modem_ardop, connector)

    control, _ = control_listener.accept()
    data, _ = data_listener.accept()
    received = _recv_until(control, b"ENABLEOFDM True\r")
    control.sendall(b"CONNECTED PP2UIT 500\r")
    data.sendall(b"\x00\x07ARQabcd")
    deadline = time.monotonic() + 5
    while len(connector.out_buffer) < 4 and time.monotonic() < deadline:
        time.sleep(0.01)
    for sock in (control, data, control_listener, data_listener):
        sock.close()

    thread.join(10)
    assert not thread.is_alive()
    assert result["value"] is True
    assert received == b"".join(ardop_init_commands(connector))
    assert connector.connected is True
    assert connector.out_buffer.read(4, 1) == b"abcd"


def test_initialize_calls_remote_and_sends_frames(monkeypatch):
    monkeypatch.setattr(ardop, "_POLL", 0.02)
    monkeypatch.setattr(ardop, "_FRAME_DELAY", 0)
    control_listener, data_listener, port = _listen_pair()
    connector = _connector(tcp_base_port=port)
    body = b"msg.txt\n" + bytes(range(200)) * 10
    connector.in_buffer.write(HEADER.pack(len(body)) + body)
    expected = b"".join(ardop_frames(body))
    thread, result = _run_in_thread(initialize_modem_ardop, connector)

    control, _ = control_listener.accept()
    data, _ = data_listener.accept()
    commands = _recv_until(control, b"ARQCALL PP2UIT 5\r")
    control.sendall(b"CONNECTED PP2UIT 500\r")
    sent = _recv_exact(data, len(expected))
    for sock in (control, data, control_listener, data_listener):
        sock.close()

    thread.join(10)
    assert not thread.is_alive()
    assert result["value"] is True
    assert commands.endswith(b"ARQCALL PP2UIT 5\r")
    assert sent == expected
    assert connector.waiting_for_connection is False
    assert len(connector.in_buffer) == 0