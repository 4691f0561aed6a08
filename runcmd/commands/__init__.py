"""Module d'exécution de commandes locales et distantes.

Classes disponibles :
    Command : Contrat d'une commande (cycle de vie, pipes, env).
    Runner : Fabrique de commandes liée à une cible.
    LocalRunner, LocalCommand : Backend processus local (subprocess).
    RemoteRunner, RemoteCommand : Backend session SSH (paramiko).
    OutputCollector : Collecte concurrente stdout/stderr.
    CommandFormatter, PlainCommandFormatter : Messages de log.
"""

from runcmd.commands.base import (
    Command,
    CommandState,
    Runner,
    runner_host,
)
from runcmd.commands.collector import OutputCollector
from runcmd.commands.formatter import (
    CommandFormatter,
    PlainCommandFormatter,
)
from runcmd.commands.local import LOOPBACK, LocalCommand, LocalRunner
from runcmd.commands.remote import RemoteCommand, RemoteRunner

__all__ = [
    "Command",
    "CommandState",
    "Runner",
    "runner_host",
    "OutputCollector",
    "CommandFormatter",
    "PlainCommandFormatter",
    "LOOPBACK",
    "LocalCommand",
    "LocalRunner",
    "RemoteCommand",
    "RemoteRunner",
]
