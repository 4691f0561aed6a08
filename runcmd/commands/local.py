"""Exécution de commandes locales via subprocess.

Ce module fournit LocalRunner et LocalCommand, l'implémentation du
contrat Command par un processus du système local.

Particularités à connaître :
    - La ligne de commande est découpée naïvement sur les espaces
      (str.split) : le premier champ est l'exécutable, les suivants
      des arguments littéraux. Aucun shell, aucune expansion, aucun
      guillemet : `echo "a b"` produit les arguments '"a' et 'b"'.
    - setenv() REMPLACE tout l'environnement hérité par la liste
      fournie, il ne fusionne pas avec os.environ.

Example :

    runner = LocalRunner(logger=logger)
    lines = runner.command("ls -la /tmp").run()
"""

import os
import subprocess  # nosec B404
from typing import Any, BinaryIO, Dict, List, Optional

from runcmd.commands.base import (
    Command,
    CommandState,
    Runner,
    split_assignment,
)
from runcmd.commands.formatter import CommandFormatter
from runcmd.commands.streams import StreamCopier, usable_fileno
from runcmd.errors.exceptions import (
    CommandStateError,
    InvalidArgumentError,
    NonZeroExitError,
    StartFailureError,
)
from runcmd.logging.base import Logger

LOOPBACK = "127.0.0.1"


class LocalCommand(Command):
    """Commande exécutée par un processus local.

    Les pipes sont créés par os.pipe() dès leur demande, avant le
    démarrage. Après le lancement, le parent ferme les extrémités
    transmises à l'enfant ; wait() ferme celles retournées à
    l'appelant.

    Attributes:
        _argv: Exécutable et arguments.
        _env: Environnement complet de l'enfant, ou None (hérité).
        _proc: Processus lancé.
        _child_fds: Extrémités de pipes destinées à l'enfant.
        _parent_files: Extrémités de pipes retournées à l'appelant.
        _copiers: Threads alimentant les sinks sans descripteur.
    """

    def __init__(
        self,
        cmdline: str,
        argv: List[str],
        logger: Optional[Logger] = None,
        formatter: Optional[CommandFormatter] = None,
    ) -> None:
        super().__init__(cmdline, LOOPBACK, logger, formatter)
        self._argv = argv
        self._env: Optional[Dict[str, str]] = None
        self._proc: Optional[subprocess.Popen] = None
        self._child_fds: Dict[str, int] = {}
        self._parent_files: Dict[str, Any] = {}
        self._copiers: List[StreamCopier] = []
        self._copy_sources: List[BinaryIO] = []

    @property
    def argv(self) -> List[str]:
        """Exécutable et arguments issus du découpage."""
        return list(self._argv)

    @property
    def pid(self) -> Optional[int]:
        """PID du processus, None avant start()."""
        return self._proc.pid if self._proc is not None else None

    def setenv(self, env: List[str]) -> None:
        """Remplace l'environnement du processus par env.

        L'environnement de l'appelant n'est PAS hérité : seules les
        variables listées sont visibles par l'enfant. Pour une clé
        répétée, la dernière valeur l'emporte. Les entrées sans '='
        sont ignorées avec un avertissement.

        Args:
            env: Liste ordonnée "clé=valeur".
        """
        self._ensure_created("setenv")
        resolved: Dict[str, str] = {}
        for entry in env:
            assignment = split_assignment(entry)
            if assignment is None:
                self._log_warning(
                    f"Affectation ignorée (format clé=valeur "
                    f"attendu) : {entry!r}"
                )
                continue
            name, value = assignment
            resolved[name] = value
        self._env = resolved
        self._log_env(list(resolved))

    def stdin_pipe(self) -> BinaryIO:
        self._ensure_pipe_allowed("stdin")
        read_fd, write_fd = os.pipe()
        self._child_fds["stdin"] = read_fd
        stream = os.fdopen(write_fd, "wb")
        self._parent_files["stdin"] = stream
        self._piped.add("stdin")
        return stream

    def stdout_pipe(self) -> BinaryIO:
        return self._output_pipe("stdout")

    def stderr_pipe(self) -> BinaryIO:
        return self._output_pipe("stderr")

    def _output_pipe(self, stream_name: str) -> BinaryIO:
        self._ensure_pipe_allowed(stream_name)
        read_fd, write_fd = os.pipe()
        self._child_fds[stream_name] = write_fd
        stream = os.fdopen(read_fd, "rb")
        self._parent_files[stream_name] = stream
        self._piped.add(stream_name)
        return stream

    def start(self) -> None:
        """Lance le processus.

        Raises:
            StartFailureError: Exécutable introuvable, permission
                refusée, conflit pipe/sink.
            CommandStateError: Si la commande a déjà été démarrée.
        """
        self._ensure_created("start")
        try:
            self._check_stream_conflicts()
            stdout = self._output_target("stdout")
            stderr = self._output_target("stderr")
            self._proc = subprocess.Popen(  # nosec B603
                self._argv,
                stdin=self._child_fds.get("stdin", subprocess.DEVNULL),
                stdout=stdout,
                stderr=stderr,
                env=self._env,
                close_fds=True,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            raise self._fail_start(exc) from exc
        except StartFailureError as exc:
            raise self._fail_start(exc)
        finally:
            self._close_child_fds()
        self._state = CommandState.STARTED
        self._log_start()
        for copier in self._copiers:
            copier.start()

    def _output_target(self, stream_name: str) -> Any:
        """Choisit la destination d'un flux de sortie de l'enfant."""
        if stream_name in self._child_fds:
            return self._child_fds[stream_name]
        sink = self._sinks.get(stream_name)
        if sink is None:
            return subprocess.DEVNULL
        fileno = usable_fileno(sink)
        if fileno is not None:
            flush = getattr(sink, "flush", None)
            if callable(flush):
                flush()
            return fileno
        read_fd, write_fd = os.pipe()
        self._child_fds[f"{stream_name}-copy"] = write_fd
        source = os.fdopen(read_fd, "rb")
        self._copy_sources.append(source)
        self._copiers.append(StreamCopier(source, sink, stream_name))
        return write_fd

    def _close_child_fds(self) -> None:
        for fd in self._child_fds.values():
            try:
                os.close(fd)
            except OSError:
                # Déjà fermé par un échec précédent.
                continue
        self._child_fds.clear()

    def wait(self) -> None:
        """Attend la fin du processus et libère les pipes.

        Comme pour un pipe de processus classique, les flux retournés
        par stdout_pipe()/stderr_pipe() sont fermés ici : toutes les
        lectures doivent être terminées avant l'appel.

        Raises:
            NonZeroExitError: Code de retour non nul ou processus tué
                par un signal (exit_code vaut alors -1).
            StreamFailureError: Échec de copie vers un sink.
            ResourceReleaseError: Échec de fermeture des pipes, si
                aucune autre erreur n'est en cours.
            CommandStateError: Avant start() ou au second appel.
        """
        self._ensure_started("wait")
        try:
            returncode = self._proc.wait()
            for copier in self._copiers:
                copier.join()
        finally:
            self._state = CommandState.FINISHED
            release_error = self._release_once()

        primary: Optional[Exception] = None
        if returncode < 0:
            primary = NonZeroExitError(
                self._cmdline, -1, signal=-returncode
            )
        elif returncode > 0:
            primary = NonZeroExitError(self._cmdline, returncode)
        self._log_exit(returncode)

        copy_errors = [c.error for c in self._copiers if c.error]
        self._conclude(primary, copy_errors, release_error)

    def kill(self) -> None:
        """Tue le processus (annulation hors bande).

        wait() lèvera ensuite NonZeroExitError avec signal=SIGKILL.
        """
        if self._state is not CommandState.STARTED:
            raise CommandStateError(
                f"kill sur une commande non démarrée : {self._cmdline}"
            )
        self._proc.kill()

    def _release(self) -> List[Exception]:
        errors: List[Exception] = []
        self._close_child_fds()
        for stream in [*self._parent_files.values(), *self._copy_sources]:
            try:
                stream.close()
            except OSError as exc:
                errors.append(exc)
        if self._proc is not None and self._proc.returncode is None:
            # Démarrage partiel : le processus ne doit pas rester zombie.
            try:
                self._proc.kill()
                self._proc.wait()
            except OSError as exc:
                errors.append(exc)
        return errors


class LocalRunner(Runner):
    """Runner de la machine locale.

    Sans état propre : il ne porte que le logger et le formateur
    transmis aux commandes.
    """

    def __init__(
        self,
        logger: Optional[Logger] = None,
        formatter: Optional[CommandFormatter] = None,
    ) -> None:
        self._logger = logger
        self._formatter = formatter

    def command(self, cmdline: str) -> LocalCommand:
        """Crée une commande locale.

        Le premier champ (séparateur : blancs) est l'exécutable, les
        autres sont des arguments littéraux, sans interprétation shell.

        Raises:
            InvalidArgumentError: Si cmdline est vide ou ne contient
                que des blancs.
        """
        self._validate_cmdline(cmdline)
        argv = cmdline.split()
        if not argv:
            raise InvalidArgumentError(
                f"Aucun exécutable dans la commande : {cmdline!r}"
            )
        return LocalCommand(cmdline, argv, self._logger, self._formatter)

    def host(self) -> str:
        """Retourne l'adresse de bouclage."""
        return LOOPBACK
