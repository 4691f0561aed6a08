"""Copie de flux en tâche de fond.

Utilisé par les backends pour alimenter un sink arbitraire (objet
exposant write()) ou pour vider un flux dont personne ne lit la
sortie.
"""

import io
import threading
from typing import Any, BinaryIO, Optional

COPY_CHUNK_SIZE = 32 * 1024


def usable_fileno(sink: Any) -> Optional[int]:
    """Retourne le descripteur réel de sink, ou None.

    io.BytesIO et les objets sans fichier sous-jacent retournent None.
    """
    fileno = getattr(sink, "fileno", None)
    if fileno is None:
        return None
    try:
        return fileno()
    except (OSError, io.UnsupportedOperation, ValueError):
        return None


class StreamCopier(threading.Thread):
    """Thread copiant source vers sink jusqu'à la fin de fichier.

    Si sink vaut None, les données sont lues puis jetées. L'erreur
    éventuelle est conservée dans error, jamais levée dans le thread.

    Attributes:
        name_stream: Nom du flux copié (stdout, stderr).
        error: Première erreur rencontrée, ou None.
    """

    def __init__(
        self,
        source: BinaryIO,
        sink: Any = None,
        name_stream: str = "",
        close_source: bool = True,
    ) -> None:
        super().__init__(name=f"runcmd-copy-{name_stream}", daemon=True)
        self._source = source
        self._sink = sink
        self._close_source = close_source
        self.name_stream = name_stream
        self.error: Optional[Exception] = None

    def run(self) -> None:
        try:
            while True:
                chunk = self._source.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                self._write(chunk)
            self._flush()
        except (OSError, ValueError) as exc:
            if self.error is None:
                self.error = exc
        finally:
            if self._close_source:
                try:
                    self._source.close()
                except OSError as exc:
                    if self.error is None:
                        self.error = exc

    def _write(self, chunk: bytes) -> None:
        # Après un échec du sink, la source continue d'être vidée
        # pour ne pas bloquer l'écrivain.
        if self._sink is None:
            return
        try:
            self._sink.write(chunk)
        except (OSError, ValueError, TypeError) as exc:
            self.error = exc
            self._sink = None

    def _flush(self) -> None:
        flush = getattr(self._sink, "flush", None)
        if not callable(flush):
            return
        try:
            flush()
        except (OSError, ValueError) as exc:
            self.error = exc
