"""Command line entry point: parse options, start the spools and run the modem."""

from __future__ import annotations

import logging
import re
import sys
import threading
from collections.abc import Callable, Sequence
from getopt import GetoptError, gnu_getopt

from hfconnector.ardop import initialize_modem_ardop
from hfconnector.radio_io import PttRadio, key_off
from hfconnector.sbitx_io import ControllerConnection
from hfconnector.spool import spool_input_directory, spool_output_directory
from hfconnector.state import Connector, ConnectorConfig
from hfconnector.vara import initialize_modem_vara

RADIO_TYPE_SHM = 0
VERSION = "0.5"
PROG = "hfconnector"

_SHORT_OPTIONS = "hr:si:o:c:d:p:a:t:f:x:m:l"
_ATOI = re.compile(r"\s*([+-]?\d+)")
_MODEL_HEADER = (
    " Rig #  Mfg                    Model                   Version         Status      Macro"
)

log = logging.getLogger(__name__)

Radio = ControllerConnection | PttRadio


def _usage() -> str:
    return "\n".join([
        "Usage modes: ",
        f"{PROG} -x modem_type -i input_spool_directory -o output_spool_directory "
        "-c callsign -d remote_callsign -a tnc_ip_address -p tcp_base_port "
        "-m hamlib_radio_model -r radio_address",
        f"{PROG} -h",
        "",
        "Options:",
        " -x [mercury,ardop,vara]           Choose modem/radio type.",
        " -i input_spool_directory    Input spool directory (Messages to send).",
        " -o output_spool_directory    Output spool directory (Received messages).",
        " -c callsign                        Station Callsign (Eg: PU2HFF).",
        " -d remote_callsign           Remote Station Callsign.",
        " -a tnc_ip_address            IP address of the TNC,",
        " -p tcp_base_port              TCP base port of the TNC. For VARA and ARDOP "
        "ports tcp_base_port and tcp_base_port+1 are used,",
        " -t timeout                 Time to wait before disconnect when idling.",
        " -f features                Enable/Disable features. Supported features: "
        "ofdm, noofdm (ARDOP ONLY).",
        " -m [radio_model]           Sets HAMLIB radio model",
        " -r [radio_address]         Sets HAMLIB radio device file or ip:port address",
        " -s                         Use HERMES's shared memory interface instead of "
        "HAMLIB (Do not use -r and -m in this case)",
        " -l                         List HAMLIB supported radio models",
        " -h                          Prints this help.",
    ])


def _atoi(text: str) -> int:
    match = _ATOI.match(text)
    return int(match.group(1)) if match else 0


def _list_models() -> None:
    print(_MODEL_HEADER)
    log.error("models empty?")


def normalize_directory(path: str) -> str:
    """Return ``path`` with a trailing slash."""
    return path if path.endswith("/") else path + "/"


def parse_args(argv: Sequence[str]) -> ConnectorConfig:
    """Build the configuration from command line arguments (without the program name).

    Prints the usage and raises SystemExit(1) on -h, on bad options and when
    no argument is given; -l lists radio models and raises SystemExit(0).
    """
    args = list(argv)
    if not args:
        print(_usage(), file=sys.stderr)
        raise SystemExit(1)
    try:
        options, _ = gnu_getopt(args, _SHORT_OPTIONS)
    except GetoptError as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        print(_usage(), file=sys.stderr)
        raise SystemExit(1) from exc

    config = ConnectorConfig()
    for option, value in options:
        if option == "-h":
            print(_usage(), file=sys.stderr)
            raise SystemExit(1)
        if option == "-l":
            _list_models()
            raise SystemExit(0)
        if option == "-c":
            config.call_sign = value
        elif option == "-d":
            config.remote_call_sign = value
        elif option == "-t":
            config.timeout = _atoi(value)
        elif option == "-p":
            config.tcp_base_port = _atoi(value)
        elif option == "-a":
            config.ip_address = value
        elif option == "-x":
            config.modem_type = value
        elif option == "-i":
            config.input_directory = normalize_directory(value)
        elif option == "-o":
            config.output_directory = normalize_directory(value)
        elif option == "-f":
            config.ofdm_mode = "noofdm" not in value
        elif option == "-r":
            config.serial_path = value
        elif option == "-m":
            config.radio_type = _atoi(value)
        elif option == "-s":
            config.radio_type = RADIO_TYPE_SHM
    return config


def modem_thread(connector: Connector, radio: Radio | None = None) -> bool:
    """Run the modem named in the configuration until its link goes down.

    Mercury is driven through the VARA-compatible interface. Returns False
    for an unknown modem type or when the TNC could not be reached.
    """
    modem = connector.config.modem_type
    if modem in ("mercury", "vara"):
        return initialize_modem_vara(connector, radio)
    if modem == "ardop":
        return initialize_modem_ardop(connector)
    log.error("Unknown modem type %r.", modem)
    return False


def _run_spool(target: Callable[[Connector, threading.Event], None],
               connector: Connector, stop: threading.Event) -> None:
    try:
        target(connector, stop)
    except OSError as exc:
        log.error("%s", exc)


def _shutdown(connector: Connector, radio: Radio | None) -> None:
    if connector.config.serial_keying and radio is not None:
        key_off(radio)
    connector.close_sockets()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the connector; returns the process exit status."""
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr)
    print(f"HF modem connector version {VERSION}", file=sys.stderr)
    print("License: GPLv3+\n", file=sys.stderr)

    try:
        config = parse_args(sys.argv[1:] if argv is None else argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1

    radio: Radio | None = None
    if config.radio_type == RADIO_TYPE_SHM:
        print("Connector SHM not created. Is sbitx_controller running?", file=sys.stderr)
        return 1
    if config.radio_type is not None:
        print(f"Unknown rig num {config.radio_type}, or initialization error.",
              file=sys.stderr)
        print("Please check available radios with -l option.", file=sys.stderr)
        return 2

    connector = Connector(config)
    stop = threading.Event()
    spools = [
        threading.Thread(target=_run_spool, args=(spool_input_directory, connector, stop),
                         name="spool_input", daemon=True),
        threading.Thread(target=_run_spool, args=(spool_output_directory, connector, stop),
                         name="spool_output", daemon=True),
    ]
    for spool in spools:
        spool.start()

    try:
        modem_thread(connector, radio)
    except KeyboardInterrupt:
        print("\nExiting...", file=sys.stderr)
    finally:
        stop.set()
        _shutdown(connector, radio)
    return 0