"""Interface abstraite pour la gestion des erreurs."""

from abc import ABC, abstractmethod


class ErrorHandler(ABC):
    """Interface de base pour les handlers d'erreurs.

    Chaque implémentation concrète définit une stratégie de
    traitement des erreurs secondaires (journalisation, collecte...).
    """

    @abstractmethod
    def handle(self, error: Exception) -> None:
        """Traite une erreur.

        Args:
            error: L'exception à traiter.
        """
        pass
