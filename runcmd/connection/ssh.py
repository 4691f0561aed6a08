"""Établissement de connexions SSH authentifiées.

Ce module produit un RemoteRunner à partir d'une identité et d'une
clé privée ou d'un mot de passe. La vérification de la clé d'hôte
s'appuie sur un fichier known_hosts ; par défaut celui situé dans le
répertoire de la clé privée (ex: ~/.ssh/known_hosts pour
~/.ssh/id_ed25519).
"""

from pathlib import Path
from typing import Optional, Tuple, Union

import paramiko

from runcmd.commands.remote import RemoteRunner
from runcmd.errors.exceptions import (
    AuthenticationFailureError,
    ConnectionFailureError,
    HostKeyVerificationError,
    InvalidArgumentError,
)
from runcmd.logging.base import Logger

DEFAULT_PORT = 22
DEFAULT_TIMEOUT = 10.0


class RejectUnknownHostPolicy(paramiko.MissingHostKeyPolicy):
    """Refuse tout hôte absent du registre known_hosts."""

    def missing_host_key(self, client, hostname, key) -> None:
        raise HostKeyVerificationError(
            f"Hôte {hostname} absent de known_hosts "
            f"(clé {key.get_name()} {key.get_fingerprint().hex()})"
        )


def parse_address(address: str) -> Tuple[str, int]:
    """Découpe "hôte", "hôte:port" ou "[ipv6]:port".

    Raises:
        InvalidArgumentError: Adresse vide ou port invalide.
    """
    if not address:
        raise InvalidArgumentError("L'adresse de l'hôte est vide")
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port_text = rest[1:] if rest.startswith(":") else ""
    elif address.count(":") == 1:
        host, _, port_text = address.partition(":")
    else:
        # Nom d'hôte seul ou IPv6 sans crochets.
        host, port_text = address, ""
    if not port_text:
        return host, DEFAULT_PORT
    try:
        port = int(port_text)
    except ValueError:
        raise InvalidArgumentError(f"Port invalide : {address}")
    if not 0 < port < 65536:
        raise InvalidArgumentError(f"Port hors limites : {address}")
    return host, port


def _new_client(
    known_hosts: Optional[Path],
    strict: bool,
    logger: Optional[Logger],
) -> paramiko.SSHClient:
    client = paramiko.SSHClient()
    if known_hosts is not None:
        if known_hosts.exists():
            # Chargé sans save_host_keys : le fichier n'est jamais réécrit.
            client.get_host_keys().load(str(known_hosts))
        elif strict:
            raise HostKeyVerificationError(
                f"Registre known_hosts introuvable : {known_hosts}"
            )
    else:
        client.load_system_host_keys()
    if strict:
        client.set_missing_host_key_policy(RejectUnknownHostPolicy())
    else:
        if logger:
            logger.log_warning(
                "Vérification de la clé d'hôte désactivée"
            )
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    return client


def _connect(
    client: paramiko.SSHClient,
    user: str,
    host: str,
    port: int,
    timeout: float,
    logger: Optional[Logger],
    **auth,
) -> RemoteRunner:
    try:
        client.connect(
            hostname=host,
            port=port,
            username=user,
            timeout=timeout,
            look_for_keys=False,
            allow_agent=False,
            **auth,
        )
    except HostKeyVerificationError:
        client.close()
        raise
    except paramiko.BadHostKeyException as exc:
        client.close()
        raise HostKeyVerificationError(
            f"Clé d'hôte de {host} différente de known_hosts : {exc}"
        ) from exc
    except paramiko.AuthenticationException as exc:
        client.close()
        raise AuthenticationFailureError(
            f"Authentification refusée pour {user}@{host}:{port} : {exc}"
        ) from exc
    except (paramiko.SSHException, OSError, EOFError) as exc:
        client.close()
        raise ConnectionFailureError(
            f"Connexion à {host}:{port} impossible : {exc}"
        ) from exc
    if logger:
        logger.log_info(f"Connecté à {user}@{host}:{port}")
    return RemoteRunner(client, f"{host}:{port}", logger=logger)


def load_private_key(
    key_path: Union[str, Path],
    passphrase: Optional[str] = None,
) -> paramiko.PKey:
    """Charge une clé privée (RSA, ECDSA, Ed25519), chiffrée ou non.

    Raises:
        AuthenticationFailureError: Fichier absent, format inconnu,
            passphrase manquante ou incorrecte.
    """
    path = Path(key_path).expanduser()
    if not path.is_file():
        raise AuthenticationFailureError(f"Clé privée introuvable : {path}")
    secret = passphrase.encode("utf-8") if passphrase else None
    try:
        # Le nom du paramètre a changé (passphrase puis password) :
        # il est passé par position.
        return paramiko.PKey.from_path(path, secret)
    except (paramiko.SSHException, paramiko.UnknownKeyType, ValueError) as exc:
        raise AuthenticationFailureError(
            f"Clé privée illisible {path} : {exc}"
        ) from exc
    except TypeError as exc:
        # cryptography lève TypeError pour une clé chiffrée sans
        # passphrase.
        if secret is not None:
            raise
        raise AuthenticationFailureError(
            f"Passphrase requise pour la clé {path}"
        ) from exc


def connect_with_key(
    user: str,
    address: str,
    key_path: Union[str, Path],
    passphrase: Optional[str] = None,
    known_hosts: Optional[Union[str, Path]] = None,
    strict_host_key_checking: bool = True,
    timeout: float = DEFAULT_TIMEOUT,
    logger: Optional[Logger] = None,
) -> RemoteRunner:
    """Ouvre une connexion authentifiée par clé privée.

    Args:
        user: Utilisateur distant.
        address: "hôte" ou "hôte:port".
        key_path: Chemin de la clé privée.
        passphrase: Passphrase si la clé est chiffrée.
        known_hosts: Registre des clés d'hôte. Par défaut le fichier
            known_hosts du répertoire de la clé.
        strict_host_key_checking: Refuser les hôtes inconnus.
        timeout: Délai de connexion TCP en secondes.
        logger: Logger optionnel, transmis au runner.

    Returns:
        RemoteRunner possédant la connexion.

    Raises:
        AuthenticationFailureError: Clé ou authentification refusée.
        HostKeyVerificationError: Hôte inconnu ou clé différente.
        ConnectionFailureError: Hôte injoignable.
    """
    host, port = parse_address(address)
    pkey = load_private_key(key_path, passphrase)
    registry = (
        Path(known_hosts).expanduser() if known_hosts is not None
        else Path(key_path).expanduser().parent / "known_hosts"
    )
    client = _new_client(registry, strict_host_key_checking, logger)
    return _connect(client, user, host, port, timeout, logger, pkey=pkey)


def connect_with_password(
    user: str,
    address: str,
    password: str,
    known_hosts: Optional[Union[str, Path]] = None,
    strict_host_key_checking: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
    logger: Optional[Logger] = None,
) -> RemoteRunner:
    """Ouvre une connexion authentifiée par mot de passe.

    Sans known_hosts, les clés d'hôte du système sont chargées. La
    vérification stricte est désactivée par défaut pour ce mode.

    Raises:
        AuthenticationFailureError: Mot de passe refusé.
        HostKeyVerificationError: Clé d'hôte refusée.
        ConnectionFailureError: Hôte injoignable.
    """
    host, port = parse_address(address)
    registry = Path(known_hosts).expanduser() if known_hosts else None
    client = _new_client(registry, strict_host_key_checking, logger)
    return _connect(
        client, user, host, port, timeout, logger, password=password
    )
