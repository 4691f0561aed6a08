"""
    LoggerErrorHandler
"""
from typing import Optional

from runcmd.errors.base import ErrorHandler
from runcmd.errors.exceptions import RuncmdError
from runcmd.logging.base import Logger


class LoggerErrorHandler(ErrorHandler):
    """Handler pour logger les erreurs secondaires.

    Utilisé quand une erreur survient alors qu'une autre est déjà
    en cours de propagation (ex: échec de fermeture de session après
    un code de retour non nul). L'erreur est tracée, jamais relancée.
    """

    def __init__(
        self,
        logger: Optional[Logger] = None,
        context: str = "",
    ) -> None:
        """Initialise le handler.

        Args:
            logger: Logger optionnel. Sans logger, les erreurs sont
                seulement comptées.
            context: Préfixe ajouté aux messages (ex: la commande).
        """
        self.logger = logger
        self.context = context
        self.handled: list[Exception] = []

    def handle(self, error: Exception) -> None:
        """Log l'erreur avec un préfixe selon sa nature.

        Args:
            error: L'exception à logger.
        """
        self.handled.append(error)
        if self.logger is None:
            return
        prefix = f"{self.context} : " if self.context else ""
        if isinstance(error, RuncmdError):
            self.logger.log_error(
                f"{prefix}{type(error).__name__}: {error}"
            )
        else:
            self.logger.log_error(
                f"{prefix}Erreur inattendue: "
                f"{type(error).__name__}: {error}"
            )
