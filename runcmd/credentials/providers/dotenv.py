"""Source de secrets depuis un fichier .env (python-dotenv)."""

from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import dotenv_values

from runcmd.credentials.base import SecretProvider
from runcmd.logging.base import Logger


class DotEnvSecretProvider(SecretProvider):
    """Lit les secrets d'un fichier .env.

    Contrairement a load_dotenv, le fichier est lu sans modifier
    os.environ : les secrets SSH ne doivent pas fuir vers
    l'environnement herite par les commandes locales.

    Attributes:
        _dotenv_path: Chemin vers le fichier .env.
        _values: Contenu charge, None tant que non lu.
    """

    def __init__(
        self,
        dotenv_path: Union[str, Path],
        logger: Optional[Logger] = None,
    ) -> None:
        """Initialise la source.

        Args:
            dotenv_path: Chemin vers le fichier .env.
            logger: Logger optionnel (injection de dependance).
        """
        self._dotenv_path = Path(dotenv_path)
        self._logger = logger
        self._values: Optional[Dict[str, Optional[str]]] = None

    def load(self) -> bool:
        """Lit le fichier .env.

        Returns:
            True si le fichier a ete lu.
        """
        if not self._dotenv_path.exists():
            if self._logger:
                self._logger.log_warning(
                    f"Fichier .env introuvable : {self._dotenv_path}"
                )
            self._values = {}
            return False
        self._values = dict(dotenv_values(self._dotenv_path))
        return True

    def get(self, service: str, key: str) -> Optional[str]:
        if self._values is None:
            self.load()
        value = (self._values or {}).get(key.upper())
        return value if value else None

    def is_available(self) -> bool:
        return self._dotenv_path.exists()

    @property
    def source_name(self) -> str:
        return "dotenv"
