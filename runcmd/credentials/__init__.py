"""Gestion des secrets de connexion (mots de passe, passphrases)."""

from runcmd.credentials.base import SecretProvider
from runcmd.credentials.chain import DEFAULT_SERVICE, SecretChain
from runcmd.credentials.exceptions import SecretError, SecretNotFoundError
from runcmd.credentials.providers import (
    DotEnvSecretProvider,
    EnvSecretProvider,
    KeyringSecretProvider,
)

__all__ = [
    "DEFAULT_SERVICE",
    "SecretProvider",
    "SecretChain",
    "SecretError",
    "SecretNotFoundError",
    "EnvSecretProvider",
    "DotEnvSecretProvider",
    "KeyringSecretProvider",
]
