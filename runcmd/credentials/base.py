"""Interface abstraite des sources de secrets SSH.

Un secret (mot de passe, passphrase de clé privée) est identifié par
un service applicatif et un nom de clé.
"""

from abc import ABC, abstractmethod
from typing import Optional


class SecretProvider(ABC):
    """Interface de lecture d'un secret depuis une source."""

    @abstractmethod
    def get(self, service: str, key: str) -> Optional[str]:
        """Retourne la valeur du secret ou None si absent.

        Args:
            service: Nom du service applicatif.
            key: Nom de la cle.
        """
        pass  # pragma: no cover

    @abstractmethod
    def is_available(self) -> bool:
        """Indique si cette source est operationnelle."""
        pass  # pragma: no cover

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Nom court de la source (ex: "env", "keyring")."""
        pass  # pragma: no cover
