"""Interface abstraite pour le logging."""

from abc import ABC, abstractmethod


class Logger(ABC):
    """Interface pour le système de logging.

    Injectée de façon optionnelle dans les runners, les commandes
    et le collecteur de sortie.
    """

    @abstractmethod
    def log_debug(self, message: str) -> None:
        """Log un message de diagnostic (lignes de sortie, env)."""
        pass

    @abstractmethod
    def log_info(self, message: str) -> None:
        """Log un message d'information."""
        pass

    @abstractmethod
    def log_warning(self, message: str) -> None:
        """Log un avertissement."""
        pass

    @abstractmethod
    def log_error(self, message: str) -> None:
        """Log une erreur."""
        pass
