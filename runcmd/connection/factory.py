"""Construction des runners depuis le fichier de configuration."""

from pathlib import Path
from typing import Optional, Union

from runcmd.commands.base import Runner
from runcmd.commands.local import LocalRunner
from runcmd.config.loader import ConfigLoader, FileConfigLoader
from runcmd.config.models import RuncmdConfig, TargetConfig
from runcmd.connection.ssh import connect_with_key, connect_with_password
from runcmd.credentials.base import SecretProvider
from runcmd.credentials.chain import DEFAULT_SERVICE, SecretChain
from runcmd.errors.exceptions import InvalidArgumentError
from runcmd.logging.base import Logger
from runcmd.logging.file_logger import FileLogger


def load_runner_config(
    config_path: Union[str, Path],
    loader: Optional[ConfigLoader] = None,
) -> RuncmdConfig:
    """Charge et valide un fichier TOML ou JSON."""
    return (loader or FileConfigLoader()).load(
        config_path, schema=RuncmdConfig
    )


def logger_from_config(config: RuncmdConfig) -> Optional[FileLogger]:
    """Crée le FileLogger de la section [logging], si un fichier est défini."""
    if config.logging.file is None:
        return None
    return FileLogger.from_config(config.logging)


def _secret_chain(
    secrets: Optional[SecretProvider], logger: Optional[Logger]
) -> SecretChain:
    if secrets is None:
        return SecretChain.default(logger=logger)
    if isinstance(secrets, SecretChain):
        return secrets
    return SecretChain([secrets], logger=logger)


def runner_from_target(
    target: TargetConfig,
    secrets: Optional[SecretProvider] = None,
    logger: Optional[Logger] = None,
) -> Runner:
    """Crée le runner d'une cible.

    Les secrets (mot de passe, passphrase) sont résolus par nom via
    secrets, par défaut la chaîne env -> keyring.

    Raises:
        SecretNotFoundError: Secret référencé mais introuvable.
        AuthenticationFailureError, ConnectionFailureError: Voir
            runcmd.connection.ssh.
    """
    if target.kind == "local":
        return LocalRunner(logger=logger)
    chain = _secret_chain(secrets, logger)
    if target.key_file is not None:
        passphrase = None
        if target.passphrase_key is not None:
            passphrase = chain.require(DEFAULT_SERVICE, target.passphrase_key)
        return connect_with_key(
            target.user,
            target.address,
            target.key_file,
            passphrase=passphrase,
            known_hosts=target.known_hosts,
            strict_host_key_checking=target.strict_host_key_checking,
            timeout=target.connect_timeout,
            logger=logger,
        )
    return connect_with_password(
        target.user,
        target.address,
        chain.require(DEFAULT_SERVICE, target.password_key),
        known_hosts=target.known_hosts,
        strict_host_key_checking=target.strict_host_key_checking,
        timeout=target.connect_timeout,
        logger=logger,
    )


def runner_from_config(
    config: RuncmdConfig,
    name: str,
    secrets: Optional[SecretProvider] = None,
    logger: Optional[Logger] = None,
) -> Runner:
    """Crée le runner de la cible nommée.

    Raises:
        InvalidArgumentError: Cible inconnue.
    """
    if name not in config.targets:
        available = ", ".join(sorted(config.targets)) or "(aucune)"
        raise InvalidArgumentError(
            f"Cible '{name}' inconnue. Cibles disponibles : {available}"
        )
    return runner_from_target(config.targets[name], secrets, logger)
