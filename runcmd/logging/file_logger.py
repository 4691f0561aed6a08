"""Implémentation concrète du logger avec fichier."""

import logging
import os
from typing import Any, Dict, Optional, Union

from runcmd.logging.base import Logger

DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class FileLogger(Logger):
    """
    Logger qui écrit dans un fichier avec option console.

    Caractéristiques:
    - Logger unique par fichier (évite les conflits)
    - Encodage UTF-8 explicite
    - Flush immédiat après chaque log
    - Pas de propagation (évite les logs en double)
    - Support optionnel de la sortie console
    """

    def __init__(
        self,
        log_file: str,
        config: Optional[Union[Dict[str, Any], Any]] = None,
        console_output: bool = False
    ) -> None:
        """
        Initialise le logger.

        Args:
            log_file: Chemin du fichier de log
            config: Configuration optionnelle : dict avec une section
                    "logging" (clés level, format) ou modèle
                    LoggingConfig
            console_output: Activer la sortie console en plus du fichier
        """
        self.log_file = log_file

        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        log_level_str, log_format, console = self._read_config(config)
        console_output = console_output or console
        log_level = getattr(logging, log_level_str.upper(), logging.INFO)

        self.logger = logging.getLogger(f"runcmd.{log_file}")
        self.logger.setLevel(log_level)

        # Éviter les handlers dupliqués
        if not self.logger.handlers:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(log_level)
            formatter = logging.Formatter(log_format)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)
            self.handler = file_handler

            if console_output:
                console_handler = logging.StreamHandler()
                console_handler.setLevel(log_level)
                console_handler.setFormatter(formatter)
                self.logger.addHandler(console_handler)
        else:
            self.handler = self.logger.handlers[0]

        self.logger.propagate = False

    @staticmethod
    def _read_config(
        config: Optional[Union[Dict[str, Any], Any]]
    ) -> tuple[str, str, bool]:
        """Extrait niveau, format et sortie console de la config.

        Args:
            config: dict, LoggingConfig ou None.

        Returns:
            Tuple (niveau, format, console).
        """
        if config is None:
            return "INFO", DEFAULT_FORMAT, False
        if isinstance(config, dict):
            logging_cfg = config.get("logging", {})
            return (
                logging_cfg.get("level", "INFO"),
                logging_cfg.get("format", DEFAULT_FORMAT),
                bool(logging_cfg.get("console", False)),
            )
        # Modèle pydantic LoggingConfig
        return (
            getattr(config, "level", "INFO"),
            getattr(config, "format", DEFAULT_FORMAT),
            bool(getattr(config, "console", False)),
        )

    @classmethod
    def from_config(cls, config: Any) -> "FileLogger":
        """Crée un FileLogger depuis un modèle LoggingConfig.

        Args:
            config: Instance de LoggingConfig (champ file requis).

        Returns:
            FileLogger configuré.
        """
        return cls(str(config.file), config=config)

    def _flush(self) -> None:
        """Force l'écriture immédiate sur le disque."""
        if hasattr(self, 'handler') and self.handler:
            self.handler.flush()

    def log_debug(self, message: str) -> None:
        """Log un message de diagnostic."""
        self.logger.debug(message)
        self._flush()

    def log_info(self, message: str) -> None:
        """Log un message d'information."""
        self.logger.info(message)
        self._flush()

    def log_warning(self, message: str) -> None:
        """Log un avertissement."""
        self.logger.warning(message)
        self._flush()

    def log_error(self, message: str) -> None:
        """Log une erreur."""
        self.logger.error(message)
        self._flush()
