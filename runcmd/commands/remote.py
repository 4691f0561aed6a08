"""Exécution de commandes distantes via une session SSH (paramiko).

Ce module fournit RemoteRunner et RemoteCommand. Le runner possède
la connexion SSH déjà authentifiée (voir runcmd.connection) ; chaque
commande ouvre son propre canal de session.

Particularités à connaître :
    - La ligne de commande est transmise telle quelle au serveur,
      qui la fait interpréter par le shell de l'utilisateur distant
      (contrairement au backend local qui découpe sur les blancs).
    - setenv() applique les variables une par une sur la session :
      elles s'ajoutent à l'environnement du shell distant. Chaque
      requête attend la réponse du serveur ; un refus (directive
      AcceptEnv d'OpenSSH) ferme la session, qui ne peut plus démarrer.

Example :

    with connect_with_key("deploy", "build:22", "~/.ssh/id_ed25519") as runner:
        lines = runner.command("uname -a").run()
"""

import threading
from typing import Any, BinaryIO, List, Optional

import paramiko
from paramiko.common import cMSG_CHANNEL_REQUEST

from runcmd.commands.base import (
    Command,
    CommandState,
    Runner,
    split_assignment,
)
from runcmd.commands.formatter import CommandFormatter
from runcmd.commands.streams import StreamCopier
from runcmd.errors.exceptions import (
    ConnectionFailureError,
    EnvironmentApplyError,
    NonZeroExitError,
    ResourceReleaseError,
    StartFailureError,
)
from runcmd.logging.base import Logger

# Erreurs levées par paramiko lorsqu'un canal ou le transport tombe.
SSH_ERRORS = (paramiko.SSHException, OSError, EOFError)

# recv_exit_status() retourne -1 si le serveur n'a envoyé aucun statut.
MISSING_EXIT_STATUS = -1


class RemoteCommand(Command):
    """Commande exécutée dans un canal de session SSH.

    Attributes:
        _channel: Canal de session ouvert par le runner.
        _runner: Runner propriétaire de la connexion.
        _copiers: Threads alimentant les sinks ou vidant les flux
            non lus.
    """

    def __init__(
        self,
        cmdline: str,
        channel: paramiko.Channel,
        runner: "RemoteRunner",
        logger: Optional[Logger] = None,
        formatter: Optional[CommandFormatter] = None,
    ) -> None:
        super().__init__(cmdline, runner.host(), logger, formatter)
        self._channel = channel
        self._runner = runner
        self._copiers: List[StreamCopier] = []

    def setenv(self, env: List[str]) -> None:
        """Applique les affectations une par une sur la session.

        Chaque entrée est découpée sur son premier '='. Les entrées
        sans '=' sont ignorées avec un avertissement. La première
        affectation qui ne peut être transmise arrête le traitement :
        les suivantes ne sont pas appliquées.

        Args:
            env: Liste ordonnée "clé=valeur". Pour une clé répétée,
                la dernière valeur l'emporte côté serveur.

        Raises:
            EnvironmentApplyError: Affectation refusée par le serveur,
                canal fermé ou transport rompu.
        """
        self._ensure_created("setenv")
        applied: List[str] = []
        for entry in env:
            assignment = split_assignment(entry)
            if assignment is None:
                self._log_warning(
                    f"Affectation ignorée (format clé=valeur "
                    f"attendu) : {entry!r}"
                )
                continue
            name, value = assignment
            try:
                self._request_env(name, value)
            except SSH_ERRORS as exc:
                self._log_env(applied)
                raise EnvironmentApplyError(
                    f"Variable {name} refusée pour "
                    f"'{self._cmdline}' : {exc}",
                    name=name,
                ) from exc
            applied.append(name)
        self._log_env(applied)

    def _request_env(self, name: str, value: str) -> None:
        """Envoie une requête env en attendant la réponse du serveur.

        Channel.set_environment_variable n'attend aucune réponse : un
        refus y passe inaperçu. Ici la requête est construite comme
        celle de Channel.exec_command. Sur refus, paramiko ferme le
        canal et lève SSHException.
        """
        channel = self._channel
        if channel.closed or not channel.active:
            raise paramiko.SSHException("Canal fermé")
        message = paramiko.Message()
        message.add_byte(cMSG_CHANNEL_REQUEST)
        message.add_int(channel.remote_chanid)
        message.add_string("env")
        message.add_boolean(True)
        message.add_string(name)
        message.add_string(value)
        channel._event_pending()
        channel.transport._send_user_message(message)
        channel._wait_for_event()

    def stdin_pipe(self) -> BinaryIO:
        """Flux d'écriture vers l'entrée standard distante.

        Sa fermeture envoie la fin de fichier au serveur.
        """
        self._ensure_pipe_allowed("stdin")
        stream = self._channel.makefile_stdin("wb")
        self._piped.add("stdin")
        return stream

    def stdout_pipe(self) -> BinaryIO:
        self._ensure_pipe_allowed("stdout")
        stream = self._channel.makefile("rb")
        self._piped.add("stdout")
        return stream

    def stderr_pipe(self) -> BinaryIO:
        self._ensure_pipe_allowed("stderr")
        stream = self._channel.makefile_stderr("rb")
        self._piped.add("stderr")
        return stream

    def start(self) -> None:
        """Lance la ligne de commande dans la session.

        Sans stdin_pipe(), l'entrée standard distante reçoit
        immédiatement une fin de fichier. Les flux de sortie sans pipe
        ni sink sont vidés en tâche de fond.

        Raises:
            StartFailureError: Connexion fermée, session déjà utilisée,
                requête exec refusée, conflit pipe/sink.
        """
        self._ensure_created("start")
        try:
            self._check_stream_conflicts()
            if self._runner.closed or self._channel.closed:
                raise StartFailureError(
                    f"Connexion fermée, impossible de démarrer "
                    f"'{self._cmdline}'"
                )
            self._channel.exec_command(self._cmdline)
            if "stdin" not in self._piped:
                self._channel.shutdown_write()
            self._add_copier("stdout", self._channel.makefile)
            self._add_copier("stderr", self._channel.makefile_stderr)
        except StartFailureError as exc:
            raise self._fail_start(exc)
        except SSH_ERRORS as exc:
            raise self._fail_start(exc) from exc
        self._state = CommandState.STARTED
        self._log_start()
        for copier in self._copiers:
            copier.start()

    def _add_copier(self, stream_name: str, opener: Any) -> None:
        if stream_name in self._piped:
            return
        self._copiers.append(
            StreamCopier(
                opener("rb"), self._sinks.get(stream_name), stream_name
            )
        )

    def wait(self) -> None:
        """Attend le statut de sortie puis ferme la session.

        paramiko ignore la requête exit-signal : une commande tuée par
        un signal se termine sans statut. Si la session s'est fermée
        normalement (fin de fichier reçue, transport actif), l'absence
        de statut est donc un échec de la commande et non de la
        connexion.

        Raises:
            NonZeroExitError: Statut de sortie non nul, ou session
                terminée sans statut (exit_code vaut alors -1).
            ConnectionFailureError: Transport coupé ou runner fermé
                avant la réception du statut.
            StreamFailureError: Échec de copie vers un sink.
            CommandStateError: Avant start() ou au second appel.
        """
        self._ensure_started("wait")
        try:
            for copier in self._copiers:
                copier.join()
            status = self._channel.recv_exit_status()
            ended_normally = self._ended_normally()
        finally:
            self._state = CommandState.FINISHED
            release_error = self._release_once()

        primary: Optional[Exception] = None
        if status == MISSING_EXIT_STATUS and not ended_normally:
            primary = ConnectionFailureError(
                f"Session fermée sans statut de sortie : {self._cmdline}"
            )
        elif status != 0:
            primary = NonZeroExitError(self._cmdline, status)
        self._log_exit(status)

        copy_errors = [c.error for c in self._copiers if c.error]
        self._conclude(primary, copy_errors, release_error)

    def _ended_normally(self) -> bool:
        """Fin de fichier reçue alors que le transport est actif."""
        if self._runner.closed or not self._channel.eof_received:
            return False
        transport = self._channel.get_transport()
        return transport is not None and transport.is_active()

    def _release(self) -> List[Exception]:
        try:
            self._channel.close()
        except SSH_ERRORS as exc:
            return [exc]
        return []


class RemoteRunner(Runner):
    """Runner lié à une connexion SSH authentifiée.

    Le runner possède la connexion pendant toute sa durée de vie.
    close_connection() ferme le transport : les commandes créées
    auparavant ne peuvent plus démarrer. Un verrou sérialise
    l'ouverture des sessions et la fermeture du transport.

    Attributes:
        _client: Client paramiko connecté.
        _address: Identité de l'hôte fournie à la connexion.
        _closed: True après close_connection().
    """

    def __init__(
        self,
        client: paramiko.SSHClient,
        address: str = "",
        logger: Optional[Logger] = None,
        formatter: Optional[CommandFormatter] = None,
    ) -> None:
        """Initialise le runner.

        Args:
            client: Client SSH déjà connecté et authentifié.
            address: Identité de l'hôte pour host() et les logs.
                Si vide, l'adresse du pair est utilisée.
            logger: Logger optionnel transmis aux commandes.
            formatter: Formateur optionnel transmis aux commandes.
        """
        self._client = client
        self._address = address
        self._logger = logger
        self._formatter = formatter
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        """True si la connexion a été fermée par ce runner."""
        return self._closed

    def command(self, cmdline: str) -> RemoteCommand:
        """Ouvre une session et crée la commande associée.

        La ligne de commande est conservée telle quelle : le shell
        distant l'interprétera.

        Raises:
            InvalidArgumentError: Si cmdline est vide.
            ConnectionFailureError: Connexion fermée ou ouverture de
                session refusée.
        """
        self._validate_cmdline(cmdline)
        with self._lock:
            if self._closed:
                raise ConnectionFailureError(
                    f"Connexion vers {self.host()} fermée"
                )
            transport = self._client.get_transport()
            if transport is None or not transport.is_active():
                raise ConnectionFailureError(
                    f"Transport vers {self.host()} inactif"
                )
            try:
                channel = transport.open_session()
            except SSH_ERRORS as exc:
                raise ConnectionFailureError(
                    f"Ouverture de session vers {self.host()} "
                    f"impossible : {exc}"
                ) from exc
        return RemoteCommand(
            cmdline, channel, self, self._logger, self._formatter
        )

    def host(self) -> str:
        """Identité de l'hôte connecté."""
        if self._address:
            return self._address
        transport = self._client.get_transport()
        if transport is None:
            return ""
        try:
            peer = transport.getpeername()
        except OSError:
            return ""
        return f"{peer[0]}:{peer[1]}"

    def close_connection(self) -> None:
        """Ferme le transport. Les appels suivants sont sans effet.

        Raises:
            ResourceReleaseError: Si la fermeture échoue.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._client.close()
            except SSH_ERRORS as exc:
                raise ResourceReleaseError(
                    f"Fermeture de la connexion vers {self.host()} "
                    f"impossible : {exc}"
                ) from exc
        if self._logger:
            self._logger.log_info(f"Connexion fermée : {self.host()}")

    def __enter__(self) -> "RemoteRunner":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close_connection()
