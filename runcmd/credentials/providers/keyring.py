"""Source de secrets depuis le keyring systeme.

Compatibilites : GNOME Keyring, KWallet, KeePassXC (Secret Service).
"""

from typing import Any, Optional

import keyring
from keyring.errors import KeyringError

from runcmd.credentials.base import SecretProvider
from runcmd.logging.base import Logger


class KeyringSecretProvider(SecretProvider):
    """Lit les secrets via le module keyring.

    Attributes:
        _logger: Logger optionnel.
        _backend: Backend keyring injecte (pour tests unitaires).
    """

    def __init__(
        self,
        logger: Optional[Logger] = None,
        keyring_backend: Optional[Any] = None,
    ) -> None:
        """Initialise la source keyring.

        Args:
            logger: Logger optionnel (injection de dependance).
            keyring_backend: Backend optionnel exposant
                get_password(service, key), pour les tests.
        """
        self._logger = logger
        self._backend = keyring_backend

    def get(self, service: str, key: str) -> Optional[str]:
        """Lit un secret depuis le keyring.

        Returns:
            Valeur du secret ou None si absent ou si le keyring
            refuse l'acces.
        """
        backend = self._backend if self._backend is not None else keyring
        try:
            value = backend.get_password(service, key)
        except KeyringError as exc:
            if self._logger:
                self._logger.log_warning(
                    f"Keyring indisponible pour "
                    f"service={service!r}, key={key!r} : {exc}"
                )
            return None
        return value if value else None

    def is_available(self) -> bool:
        if self._backend is not None:
            return True
        backend = keyring.get_keyring()
        return getattr(backend, "priority", 0) > 0

    @property
    def source_name(self) -> str:
        return "keyring"
