"""Formateurs des messages de journalisation des commandes.

Chaque message est préfixé par l'hôte d'exécution afin de distinguer
dans un même fichier de log les commandes locales des commandes
distantes :

    [127.0.0.1] Exécution : ls -la
    [build:22] Code retour 2 : make test
"""

from abc import ABC, abstractmethod
from typing import Iterable


class CommandFormatter(ABC):
    """Interface abstraite pour formater les messages de commande."""

    @abstractmethod
    def format_start(self, command_line: str, host: str) -> str:
        """Formate le message de début d'exécution.

        Args:
            command_line: Ligne de commande telle que fournie.
            host: Identité de l'hôte d'exécution.

        Returns:
            Message formaté prêt à l'affichage.
        """
        pass

    @abstractmethod
    def format_exit(
        self, command_line: str, host: str, exit_code: int
    ) -> str:
        """Formate le message de fin d'exécution.

        Args:
            command_line: Ligne de commande.
            host: Identité de l'hôte d'exécution.
            exit_code: Code de retour observé.

        Returns:
            Message formaté prêt à l'affichage.
        """
        pass

    @abstractmethod
    def format_env(self, names: Iterable[str], host: str) -> str:
        """Formate la liste des variables d'environnement appliquées.

        Seuls les noms sont formatés, jamais les valeurs.
        """
        pass

    @abstractmethod
    def format_line(self, line: str, host: str) -> str:
        """Formate une ligne de sortie standard collectée."""
        pass


class PlainCommandFormatter(CommandFormatter):
    """Formateur texte brut pour les logs fichier."""

    def _prefix(self, host: str) -> str:
        return f"[{host}]" if host else "[?]"

    def format_start(self, command_line: str, host: str) -> str:
        """Formate le début d'exécution avec préfixe d'hôte."""
        return f"{self._prefix(host)} Exécution : {command_line}"

    def format_exit(
        self, command_line: str, host: str, exit_code: int
    ) -> str:
        """Formate la fin d'exécution avec le code retour."""
        if exit_code == 0:
            return f"{self._prefix(host)} Terminée : {command_line}"
        return (
            f"{self._prefix(host)} Code retour {exit_code} : "
            f"{command_line}"
        )

    def format_env(self, names: Iterable[str], host: str) -> str:
        """Formate les noms des variables d'environnement."""
        return (
            f"{self._prefix(host)} Environnement : "
            f"{', '.join(names) or '(vide)'}"
        )

    def format_line(self, line: str, host: str) -> str:
        """Retourne la ligne préfixée par l'hôte."""
        return f"{self._prefix(host)} | {line}"
