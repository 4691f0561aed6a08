"""
runcmd - Exécution uniforme de commandes locales ou distantes (SSH).

Modules disponibles:
- commands: Contrat Command/Runner, backends local et SSH,
  collecte de la sortie
- connection: Connexions SSH authentifiées, runners depuis la config
- config: Chargement de configuration (TOML, JSON, Pydantic)
- credentials: Secrets de connexion (env, .env, keyring)
- logging: Gestion des logs (Logger, FileLogger)
- errors: Exceptions et handlers d'erreurs
"""

__version__ = "1.0.0"

from runcmd.logging import Logger, FileLogger
from runcmd.errors import (
    RuncmdError,
    InvalidArgumentError,
    ConnectionFailureError,
    HostKeyVerificationError,
    AuthenticationFailureError,
    StartFailureError,
    CommandStateError,
    EnvironmentApplyError,
    NonZeroExitError,
    StreamFailureError,
    ResourceReleaseError,
)
from runcmd.commands import (
    Command,
    CommandState,
    Runner,
    runner_host,
    OutputCollector,
    CommandFormatter,
    PlainCommandFormatter,
    LocalCommand,
    LocalRunner,
    RemoteCommand,
    RemoteRunner,
)
from runcmd.connection import (
    connect_with_key,
    connect_with_password,
    runner_from_config,
    load_runner_config,
)
from runcmd.credentials import SecretChain

__all__ = [
    # Logging
    "Logger",
    "FileLogger",
    # Erreurs
    "RuncmdError",
    "InvalidArgumentError",
    "ConnectionFailureError",
    "HostKeyVerificationError",
    "AuthenticationFailureError",
    "StartFailureError",
    "CommandStateError",
    "EnvironmentApplyError",
    "NonZeroExitError",
    "StreamFailureError",
    "ResourceReleaseError",
    # Commandes
    "Command",
    "CommandState",
    "Runner",
    "runner_host",
    "OutputCollector",
    "CommandFormatter",
    "PlainCommandFormatter",
    "LocalCommand",
    "LocalRunner",
    "RemoteCommand",
    "RemoteRunner",
    # Connexion
    "connect_with_key",
    "connect_with_password",
    "runner_from_config",
    "load_runner_config",
    # Secrets
    "SecretChain",
]
