"""Contrat commun des commandes et des runners.

Ce module définit :
    - CommandState : États du cycle de vie d'une commande.
    - Command : Interface abstraite d'une commande (locale ou distante).
    - Runner : Interface abstraite d'une fabrique de commandes liée
      à une cible d'exécution.

Une commande est à usage unique et suit les transitions
CREATED -> STARTED -> FINISHED. L'environnement, les pipes et les
sinks ne peuvent être configurés qu'à l'état CREATED.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, BinaryIO, Dict, List, Optional, Set

from runcmd.commands.formatter import CommandFormatter, PlainCommandFormatter
from runcmd.errors.exceptions import (
    CommandStateError,
    InvalidArgumentError,
    ResourceReleaseError,
    StartFailureError,
    StreamFailureError,
)
from runcmd.errors.logger_handler import LoggerErrorHandler
from runcmd.logging.base import Logger


class CommandState(Enum):
    """États d'une commande."""

    CREATED = "created"
    STARTED = "started"
    FINISHED = "finished"


class Command(ABC):
    """Interface d'une commande unique, locale ou distante.

    Les implémentations gardent privé leur contexte d'exécution
    (processus ou session) et garantissent sa libération une seule
    fois, quel que soit le chemin (succès, échec du démarrage, code
    de retour non nul).

    Attributes:
        _cmdline: Ligne de commande d'origine (immuable).
        _host: Identité de l'hôte, utilisée pour les logs.
        _state: État courant.
        _sinks: Destinations attachées par set_stdout/set_stderr.
        _piped: Flux exposés via stdin_pipe/stdout_pipe/stderr_pipe.
    """

    def __init__(
        self,
        cmdline: str,
        host: str = "",
        logger: Optional[Logger] = None,
        formatter: Optional[CommandFormatter] = None,
    ) -> None:
        self._cmdline = cmdline
        self._host = host
        self._logger = logger
        self._formatter = formatter or PlainCommandFormatter()
        self._state = CommandState.CREATED
        self._sinks: Dict[str, Any] = {}
        self._piped: Set[str] = set()
        self._released = False

    # -------------------------
    # accesseurs
    # -------------------------
    @property
    def command_line(self) -> str:
        """Ligne de commande d'origine."""
        return self._cmdline

    def get_command_line(self) -> str:
        """Retourne la ligne de commande telle que fournie."""
        return self._cmdline

    @property
    def state(self) -> CommandState:
        """État courant de la commande."""
        return self._state

    @property
    def host(self) -> str:
        """Hôte d'exécution."""
        return self._host

    @property
    def formatter(self) -> CommandFormatter:
        """Formateur des messages de log."""
        return self._formatter

    def has_sink(self, stream: str) -> bool:
        """Indique si un sink a été attaché au flux donné."""
        return stream in self._sinks

    # -------------------------
    # cycle de vie
    # -------------------------
    @abstractmethod
    def start(self) -> None:
        """Démarre la commande sans attendre sa fin.

        Raises:
            StartFailureError: Si l'exécution ne peut pas commencer.
            CommandStateError: Si la commande n'est pas à l'état CREATED.
        """
        pass

    @abstractmethod
    def wait(self) -> None:
        """Attend la fin de la commande et libère ses ressources.

        Raises:
            NonZeroExitError: Si le statut de sortie est un échec.
            CommandStateError: Avant start() ou au second appel.
        """
        pass

    def run(self) -> List[str]:
        """Démarre la commande et collecte sa sortie standard.

        Équivaut à start() suivi du protocole OutputCollector.

        Returns:
            Lignes de la sortie standard, dans l'ordre.

        Raises:
            NonZeroExitError: Si la commande échoue (les lignes déjà
                collectées sont perdues).
            CommandStateError: Si la commande a déjà été démarrée.
        """
        from runcmd.commands.collector import OutputCollector

        self._ensure_created("run")
        collector = OutputCollector(self, logger=self._logger)
        collector.attach()
        try:
            self.start()
        except BaseException:
            collector.close()
            raise
        return collector.collect()

    # -------------------------
    # configuration (avant start)
    # -------------------------
    @abstractmethod
    def setenv(self, env: List[str]) -> None:
        """Applique des variables d'environnement "clé=valeur".

        La sémantique diffère selon le backend, voir les
        implémentations.
        """
        pass

    @abstractmethod
    def stdin_pipe(self) -> BinaryIO:
        """Retourne un flux binaire écrivant sur l'entrée standard."""
        pass

    @abstractmethod
    def stdout_pipe(self) -> BinaryIO:
        """Retourne un flux binaire lisant la sortie standard."""
        pass

    @abstractmethod
    def stderr_pipe(self) -> BinaryIO:
        """Retourne un flux binaire lisant la sortie d'erreur."""
        pass

    def set_stdout(self, sink: Any) -> None:
        """Redirige la sortie standard vers sink (méthode write)."""
        self._attach_sink("stdout", sink)

    def set_stderr(self, sink: Any) -> None:
        """Redirige la sortie d'erreur vers sink (méthode write)."""
        self._attach_sink("stderr", sink)

    # -------------------------
    # outils pour les backends
    # -------------------------
    def _attach_sink(self, stream: str, sink: Any) -> None:
        self._ensure_created(f"set_{stream}")
        if not callable(getattr(sink, "write", None)):
            raise InvalidArgumentError(
                f"Le sink de {stream} doit exposer write() : {sink!r}"
            )
        self._sinks[stream] = sink

    def _ensure_created(self, operation: str) -> None:
        if self._state is not CommandState.CREATED:
            raise CommandStateError(
                f"{operation} impossible sur une commande "
                f"{self._state.value} : {self._cmdline}"
            )

    def _ensure_started(self, operation: str) -> None:
        if self._state is CommandState.CREATED:
            raise CommandStateError(
                f"{operation} avant start : {self._cmdline}"
            )
        if self._state is CommandState.FINISHED:
            raise CommandStateError(
                f"{operation} sur une commande déjà terminée : "
                f"{self._cmdline}"
            )

    def _ensure_pipe_allowed(self, stream_name: str) -> None:
        self._ensure_created(f"{stream_name}_pipe")
        if stream_name in self._piped:
            raise StreamFailureError(
                f"{stream_name} déjà relié à un pipe : {self._cmdline}"
            )

    def _check_stream_conflicts(self) -> None:
        """Refuse un pipe et un sink attachés au même flux."""
        conflicts = sorted(self._piped & set(self._sinks))
        if conflicts:
            raise StartFailureError(
                f"Pipe et sink attachés au même flux "
                f"({', '.join(conflicts)}) : {self._cmdline}"
            )

    def _fail_start(self, error: Exception) -> StartFailureError:
        """Termine la commande après un échec de démarrage.

        Libère les ressources et retourne l'erreur à lever.
        """
        self._state = CommandState.FINISHED
        release_error = self._release_once()
        if release_error is not None:
            self._report_secondary(release_error)
        self._log_error(f"Échec du démarrage : {self._cmdline} ({error})")
        if isinstance(error, StartFailureError):
            return error
        return StartFailureError(
            f"Impossible de démarrer '{self._cmdline}' : {error}"
        )

    def _release_once(self) -> Optional[ResourceReleaseError]:
        """Libère les ressources une seule fois.

        Returns:
            L'erreur de libération, ou None. Le second appel est un
            no-op qui retourne None.
        """
        if self._released:
            return None
        self._released = True
        errors = self._release()
        if not errors:
            return None
        error = ResourceReleaseError(
            f"Libération incomplète pour '{self._cmdline}' : "
            + "; ".join(str(e) for e in errors)
        )
        error.__cause__ = errors[0]
        return error

    def _conclude(
        self,
        primary: Optional[Exception],
        copy_errors: List[Exception],
        release_error: Optional[ResourceReleaseError],
    ) -> None:
        """Lève l'erreur dominante de wait().

        Ordre de priorité : statut de sortie, copie vers un sink,
        libération des ressources. Les erreurs écartées sont tracées.
        """
        if primary is None and copy_errors:
            primary = StreamFailureError(
                f"Copie vers un sink échouée pour "
                f"'{self._cmdline}' : {copy_errors[0]}"
            )
            primary.__cause__ = copy_errors[0]
            copy_errors = copy_errors[1:]
        for error in copy_errors:
            self._report_secondary(error)
        if primary is None:
            if release_error is not None:
                raise release_error
            return
        if release_error is not None:
            self._report_secondary(release_error)
        raise primary

    def _report_secondary(self, error: Exception) -> None:
        """Trace une erreur qui ne doit pas masquer l'erreur principale."""
        LoggerErrorHandler(self._logger, self._cmdline).handle(error)

    @abstractmethod
    def _release(self) -> List[Exception]:
        """Libère processus ou session.

        Returns:
            Liste des erreurs rencontrées (jamais levées).
        """
        pass

    def _log_start(self) -> None:
        if self._logger:
            self._logger.log_info(
                self._formatter.format_start(self._cmdline, self._host)
            )

    def _log_exit(self, exit_code: int) -> None:
        if not self._logger:
            return
        message = self._formatter.format_exit(
            self._cmdline, self._host, exit_code
        )
        if exit_code == 0:
            self._logger.log_info(message)
        else:
            self._logger.log_error(message)

    def _log_env(self, names: List[str]) -> None:
        if self._logger:
            self._logger.log_debug(
                self._formatter.format_env(names, self._host)
            )

    def _log_warning(self, message: str) -> None:
        if self._logger:
            self._logger.log_warning(message)

    def _log_error(self, message: str) -> None:
        if self._logger:
            self._logger.log_error(message)


class Runner(ABC):
    """Fabrique de commandes liée à une cible d'exécution."""

    @abstractmethod
    def command(self, cmdline: str) -> Command:
        """Crée une commande non démarrée.

        Raises:
            InvalidArgumentError: Si cmdline est vide.
        """
        pass

    @abstractmethod
    def host(self) -> str:
        """Identité de la cible d'exécution."""
        pass

    @staticmethod
    def _validate_cmdline(cmdline: str) -> None:
        if not cmdline:
            raise InvalidArgumentError("La commande ne peut pas être vide")


def runner_host(runner: Optional[Runner]) -> str:
    """Retourne l'hôte d'un runner, ou "" si le runner est absent."""
    if runner is None:
        return ""
    return runner.host()


def split_assignment(entry: str) -> Optional[tuple[str, str]]:
    """Découpe "clé=valeur" sur le premier '='.

    Returns:
        (clé, valeur), ou None si l'entrée n'a pas de '=' ou pas de clé.
    """
    name, sep, value = entry.partition("=")
    if not sep or not name:
        return None
    return name, value
