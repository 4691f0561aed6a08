"""Chaine de priorite de sources de secrets.

Pattern Chain of Responsibility : les sources sont interrogees dans
l'ordre jusqu'a trouver le secret.
"""

from pathlib import Path
from typing import List, Optional, Union

from runcmd.credentials.base import SecretProvider
from runcmd.credentials.exceptions import SecretNotFoundError
from runcmd.credentials.providers.dotenv import DotEnvSecretProvider
from runcmd.credentials.providers.env import EnvSecretProvider
from runcmd.credentials.providers.keyring import KeyringSecretProvider
from runcmd.logging.base import Logger

DEFAULT_SERVICE = "runcmd"


class SecretChain(SecretProvider):
    """Parcourt une liste ordonnee de sources jusqu'au premier succes.

        chain = SecretChain.default(dotenv_path=".env")
        password = chain.require("runcmd", "BUILD_PASSWORD")

    Les valeurs ne sont jamais journalisees, seule la source l'est.
    """

    def __init__(
        self,
        providers: List[SecretProvider],
        logger: Optional[Logger] = None,
    ) -> None:
        self._providers = providers
        self._logger = logger

    def get(self, service: str, key: str) -> Optional[str]:
        """Retourne le premier secret trouve, ou None.

        Les sources indisponibles sont ignorees.
        """
        for provider in self._providers:
            if not provider.is_available():
                continue
            value = provider.get(service, key)
            if value:
                if self._logger:
                    self._logger.log_info(
                        f"Secret trouve via {provider.source_name!r} : "
                        f"service={service!r}, key={key!r}"
                    )
                return value
        return None

    def require(self, service: str, key: str) -> str:
        """Comme get(), mais leve une erreur si le secret est absent.

        Raises:
            SecretNotFoundError: si aucune source ne fournit le secret.
        """
        value = self.get(service, key)
        if value is None:
            sources = ", ".join(p.source_name for p in self._providers)
            raise SecretNotFoundError(
                f"Secret introuvable : service={service!r}, "
                f"key={key!r} (sources : {sources})"
            )
        return value

    def is_available(self) -> bool:
        return any(p.is_available() for p in self._providers)

    @property
    def source_name(self) -> str:
        return "chain"

    @classmethod
    def default(
        cls,
        dotenv_path: Optional[Union[str, Path]] = None,
        logger: Optional[Logger] = None,
    ) -> "SecretChain":
        """Cree la chaine standard env -> dotenv -> keyring.

        Args:
            dotenv_path: Fichier .env optionnel. Si None, la source
                dotenv est omise.
            logger: Logger optionnel partage.
        """
        providers: List[SecretProvider] = [EnvSecretProvider()]
        if dotenv_path is not None:
            providers.append(
                DotEnvSecretProvider(dotenv_path, logger=logger)
            )
        providers.append(KeyringSecretProvider(logger=logger))
        return cls(providers=providers, logger=logger)
