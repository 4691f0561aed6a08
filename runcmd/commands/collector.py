"""Collecte de la sortie d'une commande démarrée.

OutputCollector vide la sortie standard et la sortie d'erreur en
parallèle (deux tâches d'un ThreadPoolExecutor) pendant que la commande
s'exécute. Un pipe a une capacité bornée : lire un flux jusqu'au bout
avant l'autre, ou attendre la fin du processus avant d'avoir vidé les
deux, peut bloquer l'enfant indéfiniment.

La fin de la commande n'est observée (wait) qu'après la fin de
fichier sur les deux flux.

Example :

    collector = OutputCollector(command, logger=logger)
    collector.attach()      # avant start()
    command.start()
    lines = collector.collect()
"""

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, BinaryIO, List, Optional

from runcmd.errors.exceptions import (
    NonZeroExitError,
    RuncmdError,
    StreamFailureError,
)
from runcmd.errors.logger_handler import LoggerErrorHandler
from runcmd.logging.base import Logger

if TYPE_CHECKING:
    from runcmd.commands.base import Command

ENCODING = "utf-8"
STDERR_TAIL_LIMIT = 64 * 1024
READ_CHUNK_SIZE = 32 * 1024


def decode_line(raw: bytes) -> str:
    """Décode une ligne brute sans son terminateur (\\n ou \\r\\n)."""
    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
    return raw.decode(ENCODING, errors="replace")


class OutputCollector:
    """Vide les flux d'une commande et réconcilie avec son statut.

    Les lignes de la sortie standard constituent le résultat. La
    sortie d'erreur est vidée pour éviter tout blocage ; seule sa fin
    (STDERR_TAIL_LIMIT octets) est conservée et attachée à
    NonZeroExitError.stderr.

    Les flux déjà redirigés par l'appelant vers un sink ne sont pas
    collectés.

    Attributes:
        _command: Commande surveillée.
        _stdout: Pipe de sortie standard obtenu par attach().
        _stderr: Pipe de sortie d'erreur obtenu par attach().
        _handler: Handler des erreurs secondaires.
    """

    def __init__(
        self,
        command: "Command",
        logger: Optional[Logger] = None,
    ) -> None:
        """Initialise le collecteur.

        Args:
            command: Commande à l'état CREATED.
            logger: Logger optionnel (lignes en DEBUG).
        """
        self._command = command
        self._logger = logger
        self._stdout: Optional[BinaryIO] = None
        self._stderr: Optional[BinaryIO] = None
        self._handler = LoggerErrorHandler(logger, command.command_line)

    def attach(self) -> None:
        """Demande les pipes de sortie. Doit précéder start()."""
        if not self._command.has_sink("stdout"):
            self._stdout = self._command.stdout_pipe()
        if not self._command.has_sink("stderr"):
            self._stderr = self._command.stderr_pipe()

    def close(self) -> None:
        """Ferme les pipes obtenus par attach(). Idempotent."""
        for stream in (self._stdout, self._stderr):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError as exc:
                self._handler.handle(exc)

    def collect(self) -> List[str]:
        """Vide les flux, attend la fin et retourne les lignes.

        Returns:
            Lignes de la sortie standard.

        Raises:
            NonZeroExitError: Si la commande a échoué. Prioritaire sur
                les erreurs de flux, qui sont alors seulement tracées.
            StreamFailureError: Si la lecture d'un flux a échoué alors
                que la commande a réussi.
        """
        lines: List[str] = []
        tail = bytearray()
        stream_errors: List[BaseException] = []

        with ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="runcmd-drain"
        ) as pool:
            futures = []
            if self._stdout is not None:
                futures.append(
                    pool.submit(self._drain_lines, self._stdout, lines)
                )
            if self._stderr is not None:
                futures.append(
                    pool.submit(self._drain_tail, self._stderr, tail)
                )
            for future in futures:
                error = future.exception()
                if error is not None:
                    stream_errors.append(error)

        self.close()

        try:
            self._command.wait()
        except NonZeroExitError as error:
            error.stderr = bytes(tail).decode(ENCODING, errors="replace")
            self._report(stream_errors)
            raise
        except RuncmdError:
            self._report(stream_errors)
            raise

        if stream_errors:
            raise StreamFailureError(
                f"Lecture de la sortie impossible pour "
                f"'{self._command.command_line}' : {stream_errors[0]}"
            ) from stream_errors[0]
        return lines

    def _report(self, errors: List[BaseException]) -> None:
        for error in errors:
            if isinstance(error, Exception):
                self._handler.handle(error)

    def _drain_lines(self, stream: BinaryIO, lines: List[str]) -> None:
        """Lit stream ligne par ligne jusqu'à la fin de fichier."""
        while True:
            raw = stream.readline()
            if not raw:
                break
            line = decode_line(raw)
            lines.append(line)
            if self._logger:
                self._logger.log_debug(
                    self._command.formatter.format_line(
                        line, self._command.host
                    )
                )

    @staticmethod
    def _drain_tail(stream: BinaryIO, tail: bytearray) -> None:
        """Lit stream jusqu'au bout en ne gardant que sa fin."""
        while True:
            chunk = stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            tail.extend(chunk)
            excess = len(tail) - STDERR_TAIL_LIMIT
            if excess > 0:
                del tail[:excess]
