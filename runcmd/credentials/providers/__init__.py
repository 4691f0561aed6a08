"""Sources de secrets."""

from runcmd.credentials.providers.env import EnvSecretProvider
from runcmd.credentials.providers.dotenv import DotEnvSecretProvider
from runcmd.credentials.providers.keyring import KeyringSecretProvider

__all__ = [
    "EnvSecretProvider",
    "DotEnvSecretProvider",
    "KeyringSecretProvider",
]
