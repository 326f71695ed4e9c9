# hfconnector

hfconnector moves files between two stations over an HF radio link. It
watches an input spool directory and sends every file placed there to a
remote station through a software modem (TNC). It writes files received
from the remote station to an output spool directory.

Supported modems, selected with `-x`:

- **vara**: the VARA TNC, reached over its TCP control and data ports
- **ardop**: the ARDOP TNC, reached over its TCP control and data ports
- **mercury**: driven through the same VARA-compatible interface

## Installation

```
pip install .
```

Python 3.10 or later is needed. The package has no third-party
dependencies. Tests run with `pip install .[test]` and `pytest`.

## Usage

```
hfconnector -x vara -i /var/spool/outgoing -o /var/spool/incoming \
            -c MYCALL -d THEIRCALL -a 127.0.0.1 -p 8300
```

| Option | Meaning |
| ------ | ------- |
| `-x mercury\|ardop\|vara` | Modem type |
| `-i DIR` | Input spool directory (messages to send) |
| `-o DIR` | Output spool directory (received messages) |
| `-c CALL` | Station call sign |
| `-d CALL` | Remote station call sign |
| `-a IP` | IPv4 address of the TNC |
| `-p PORT` | TCP base port of the TNC; `PORT` is the control port, `PORT+1` the data port |
| `-t SECONDS` | Idle time before disconnecting (default 90) |
| `-f FEATURES` | `noofdm` turns OFDM off for ARDOP; anything else leaves it on |
| `-r ADDRESS` | Radio device file or address (stored only) |
| `-m MODEL` | Radio model number (see limits below) |
| `-s` | Shared-memory radio controller (see limits below) |
| `-l` | Print the radio model table header |
| `-h` | Print help |

With no arguments, with `-h` or with an unknown option the command prints
the usage and exits with status 1. Progress is logged to standard error.
Ctrl+C stops the connector and closes the TNC sockets.

## How messages travel

Each file in the input directory is framed as a 4-byte little-endian
length, the file's base name followed by a newline, then the file
contents; the length counts the name line and the contents. Files present
at start are sent straight away. The directory is then polled every
second, and a new or rewritten file is sent once it has stayed unchanged
for one poll. On the receiving side the frame is written under the same
name in the output directory, which must already exist.

When there is something to send and no link is up, the connector asks the
TNC to call the remote station (`CONNECT <call> <remote>` for VARA,
`ARQCALL <remote> 5` for ARDOP). Sent files are deleted once the TNC
reports `BUFFER 0` while connected and nothing is left to send.

- **VARA**: frames are passed to the TNC as they are. The connection is
  dropped with `DISCONNECT` after `-t` seconds without traffic.
- **ARDOP**: each frame is cut into pieces of at most 1024 bytes, each
  preceded by a 2-byte big-endian length, with a two-second pause between
  pieces. The idle timeout is handed to the TNC as `ARQTIMEOUT`, capped at
  240 seconds. Received `ARQ` packets carry the data; other packets are
  only logged.

## What the command does not do

The command cannot key a radio. There is no radio control library behind
`-m`: giving it makes the command report the model as unknown and exit
with status 2. With `-s` it reports that the shared-memory controller is
not available and exits with status 1. `-l` prints only the header of the
model table, since no models are known.

## Library use

Keying does work when the parts are used from Python.
`hfconnector.vara.initialize_modem_vara(connector, radio)` keys `radio`
on the TNC's `PTT ON` and `PTT OFF` lines whenever
`connector.config.radio_type` is set. `radio` is either any object with a
`set_ptt(on)` method (the `hfconnector.radio_io.PttRadio` protocol) or an
`hfconnector.sbitx_io.ControllerConnection`. The ARDOP path does no
keying.

The building blocks:

- `hfconnector.state`: `ConnectorConfig` (the command-line settings) and
  `Connector` (the shared run-time state and buffers)
- `hfconnector.ring_buffer`: `RingBuffer` and the thread-safe, blocking
  `SharedBuffer`
- `hfconnector.net`: `tcp_connect`, `tcp_read`, `tcp_write`
- `hfconnector.spool`: `write_message_to_buffer`,
  `read_message_from_buffer`, `spool_input_directory`,
  `spool_output_directory`
- `hfconnector.ardop`: `ardop_frames`, `parse_ardop_packet`,
  `ardop_init_commands`, `handle_ardop_control`, `initialize_modem_ardop`
- `hfconnector.vara`: `vara_init_commands`, `vara_connect_command`,
  `handle_vara_control`, `initialize_modem_vara`
- `hfconnector.common`: `timeout_tick`, `connection_timeout_loop`
- `hfconnector.radio_cmds`: `Command`, `Response`, `build_command` (the
  5-byte controller command) and `is_short_response`
- `hfconnector.sbitx_io.ControllerConnection`: an in-process mailbox
  (`radio_cmd`, `take_command`, `respond`) between the connector and a
  radio controller
- `hfconnector.radio_io`: `key_on`, `key_off`
- `hfconnector.cli`: `parse_args`, `normalize_directory`, `modem_thread`,
  `main`