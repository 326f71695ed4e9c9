"""Idle-connection timeout counting shared by all modems."""

from __future__ import annotations

import time

from hfconnector.state import Connector

SAFE_WORKERS = 2


def timeout_tick(connector: Connector) -> int:
    """Advance the idle counter by one second and return it.

    The counter only grows while connected with both data workers idle;
    otherwise it is reset to zero.
    """
    if connector.connected and connector.safe_state == SAFE_WORKERS:
        connector.timeout_counter += 1
    else:
        connector.timeout_counter = 0
    return connector.timeout_counter


def connection_timeout_loop(connector: Connector, interval: float = 1.0) -> None:
    """Tick the idle counter every ``interval`` seconds while the TNC link is up."""
    connector.timeout_counter = 0
    while connector.tcp_ret_ok:
        timeout_tick(connector)
        time.sleep(interval)