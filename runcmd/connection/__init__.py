"""Établissement des connexions et construction des runners."""

from runcmd.connection.factory import (
    load_runner_config,
    logger_from_config,
    runner_from_config,
    runner_from_target,
)
from runcmd.connection.ssh import (
    RejectUnknownHostPolicy,
    connect_with_key,
    connect_with_password,
    load_private_key,
    parse_address,
)

__all__ = [
    "connect_with_key",
    "connect_with_password",
    "load_private_key",
    "parse_address",
    "RejectUnknownHostPolicy",
    "load_runner_config",
    "logger_from_config",
    "runner_from_config",
    "runner_from_target",
]
