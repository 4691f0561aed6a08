"""Source de secrets depuis les variables d'environnement."""

import os
from typing import Optional

from runcmd.credentials.base import SecretProvider


class EnvSecretProvider(SecretProvider):
    """Lit os.environ[key.upper()].

    Exemple : key="build_password" -> os.environ["BUILD_PASSWORD"].
    """

    def get(self, service: str, key: str) -> Optional[str]:
        value = os.environ.get(key.upper())
        return value if value else None

    def is_available(self) -> bool:
        return True

    @property
    def source_name(self) -> str:
        return "env"
