"""
Exceptions personnalisées de runcmd.

Chaque exception correspond à une cause d'échec distincte du cycle
de vie d'une commande (création, démarrage, attente, flux, libération
des ressources) ou de l'établissement de la connexion distante.
"""
from typing import Optional


class ApplicationError(Exception):
    """Exception de base pour toutes les applications."""
    pass


class RuncmdError(ApplicationError):
    """Exception de base pour toutes les erreurs runcmd."""
    pass


class InvalidArgumentError(RuncmdError, ValueError):
    """Argument invalide (ex: ligne de commande vide)."""
    pass


class ConnectionFailureError(RuncmdError):
    """Le transport distant est injoignable, fermé ou rompu."""
    pass


class HostKeyVerificationError(ConnectionFailureError):
    """La clé d'hôte ne correspond pas au registre known_hosts."""
    pass


class AuthenticationFailureError(RuncmdError):
    """Clé, passphrase ou mot de passe refusé."""
    pass


class StartFailureError(RuncmdError):
    """L'exécution de la commande n'a pas pu commencer."""
    pass


class CommandStateError(RuncmdError):
    """Opération incompatible avec l'état courant de la commande."""
    pass


class EnvironmentApplyError(RuncmdError):
    """Une affectation d'environnement a été refusée.

    Les affectations suivantes ne sont pas appliquées.

    Attributes:
        name: Nom de la variable refusée.
    """

    def __init__(self, message: str, name: str = "") -> None:
        super().__init__(message)
        self.name = name


class NonZeroExitError(RuncmdError):
    """La commande s'est terminée avec un statut d'échec.

    Attributes:
        command_line: Ligne de commande exécutée.
        exit_code: Code de retour (-1 si inconnu).
        signal: Numéro du signal ayant tué le processus, ou None.
        stderr: Fin de la sortie d'erreur si elle a été collectée.
    """

    def __init__(
        self,
        command_line: str,
        exit_code: int,
        signal: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        self.command_line = command_line
        self.exit_code = exit_code
        self.signal = signal
        self.stderr = stderr
        if signal is not None:
            message = f"'{command_line}' tuée par le signal {signal}"
        else:
            message = (
                f"'{command_line}' terminée avec le code {exit_code}"
            )
        super().__init__(message)


class StreamFailureError(RuncmdError):
    """Échec d'un pipe ou d'un sink indépendant du code de retour."""
    pass


class ResourceReleaseError(RuncmdError):
    """La libération du processus ou de la session a échoué."""
    pass
