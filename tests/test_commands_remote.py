"""Tests pour le backend SSH (paramiko simulé)."""

import io
from unittest.mock import MagicMock

import paramiko
import pytest

from runcmd.commands import CommandState, RemoteRunner, runner_host
from runcmd.errors import (
    CommandStateError,
    ConnectionFailureError,
    EnvironmentApplyError,
    InvalidArgumentError,
    NonZeroExitError,
    ResourceReleaseError,
    StartFailureError,
)
from runcmd.logging.base import Logger


def make_channel(stdout=b"", stderr=b"", status=0):
    """Crée un canal de session simulé."""
    channel = MagicMock()
    channel.closed = False
    channel.active = True
    channel.remote_chanid = 7
    channel.eof_received = True
    channel.makefile.side_effect = lambda *args: io.BytesIO(stdout)
    channel.makefile_stderr.side_effect = lambda *args: io.BytesIO(stderr)
    channel.makefile_stdin.side_effect = lambda *args: io.BytesIO()
    channel.recv_exit_status.return_value = status
    return channel


def make_client(channel, active=True):
    """Crée un client SSH simulé dont le transport ouvre channel."""
    client = MagicMock(spec=paramiko.SSHClient)
    transport = MagicMock()
    transport.is_active.return_value = active
    transport.open_session.return_value = channel
    transport.getpeername.return_value = ("10.0.0.5", 22)
    client.get_transport.return_value = transport
    return client


class TestRemoteRunner:
    """Tests pour RemoteRunner."""

    def test_host_adresse_fournie(self):
        """Vérifie que host() retourne l'adresse de connexion."""
        runner = RemoteRunner(make_client(make_channel()), "build:2222")
        assert runner.host() == "build:2222"
        assert runner_host(runner) == "build:2222"

    def test_host_adresse_du_pair(self):
        """Vérifie le repli sur l'adresse du pair."""
        runner = RemoteRunner(make_client(make_channel()))
        assert runner.host() == "10.0.0.5:22"

    def test_commande_vide_refusee(self):
        """Vérifie le refus d'une ligne de commande vide."""
        runner = RemoteRunner(make_client(make_channel()), "h:22")
        with pytest.raises(InvalidArgumentError):
            runner.command("")

    def test_command_ouvre_une_session(self):
        """Vérifie l'ouverture d'une session par commande."""
        channel = make_channel()
        client = make_client(channel)
        runner = RemoteRunner(client, "h:22")
        cmd = runner.command("uname -a")
        client.get_transport().open_session.assert_called_once()
        assert cmd.state is CommandState.CREATED
        assert cmd.host == "h:22"

    def test_transport_inactif(self):
        """Vérifie ConnectionFailureError sur un transport inactif."""
        runner = RemoteRunner(make_client(make_channel(), active=False))
        with pytest.raises(ConnectionFailureError):
            runner.command("ls")

    def test_ouverture_session_refusee(self):
        """Vérifie ConnectionFailureError si open_session échoue."""
        client = make_client(make_channel())
        client.get_transport().open_session.side_effect = (
            paramiko.SSHException("refus")
        )
        runner = RemoteRunner(client, "h:22")
        with pytest.raises(ConnectionFailureError):
            runner.command("ls")

    def test_close_connection_idempotent(self):
        """Vérifie que la connexion n'est fermée qu'une fois."""
        client = make_client(make_channel())
        runner = RemoteRunner(client, "h:22")
        runner.close_connection()
        runner.close_connection()
        client.close.assert_called_once()
        assert runner.closed is True

    def test_command_apres_fermeture(self):
        """Vérifie le refus de créer une commande après fermeture."""
        runner = RemoteRunner(make_client(make_channel()), "h:22")
        runner.close_connection()
        with pytest.raises(ConnectionFailureError):
            runner.command("ls")

    def test_close_connection_en_echec(self):
        """Vérifie ResourceReleaseError si la fermeture échoue."""
        client = make_client(make_channel())
        client.close.side_effect = OSError("socket")
        runner = RemoteRunner(client, "h:22")
        with pytest.raises(ResourceReleaseError):
            runner.close_connection()

    def test_gestionnaire_de_contexte(self):
        """Vérifie la fermeture en sortie de bloc with."""
        client = make_client(make_channel())
        with RemoteRunner(client, "h:22") as runner:
            assert not runner.closed
        client.close.assert_called_once()


class TestRemoteCommandRun:
    """Tests de run() sur un canal simulé."""

    def test_run_retourne_les_lignes(self):
        """Vérifie les lignes et la transmission verbatim de la commande."""
        channel = make_channel(stdout=b"un\ndeux\r\ntrois")
        runner = RemoteRunner(make_client(channel), "h:22")
        lines = runner.command("ls -la | grep x").run()
        assert lines == ["un", "deux", "trois"]
        channel.exec_command.assert_called_once_with("ls -la | grep x")
        channel.shutdown_write.assert_called_once()
        channel.close.assert_called_once()

    def test_run_code_retour_non_nul(self):
        """Vérifie NonZeroExitError avec la fin de stderr."""
        channel = make_channel(stderr=b"boom\n", status=2)
        cmd = RemoteRunner(make_client(channel), "h:22").command("false")
        with pytest.raises(NonZeroExitError) as exc_info:
            cmd.run()
        assert exc_info.value.exit_code == 2
        assert exc_info.value.stderr == "boom\n"
        assert cmd.state is CommandState.FINISHED

    def test_run_sans_statut_de_sortie(self):
        """Vérifie ConnectionFailureError si la session est coupée."""
        channel = make_channel(status=-1)
        channel.eof_received = False
        cmd = RemoteRunner(make_client(channel), "h:22").command("ls")
        with pytest.raises(ConnectionFailureError):
            cmd.run()

    def test_run_tue_par_un_signal(self):
        """Vérifie NonZeroExitError(-1) pour une session close sans statut."""
        channel = make_channel(status=-1)
        cmd = RemoteRunner(make_client(channel), "h:22").command("kill -9 $$")
        with pytest.raises(NonZeroExitError) as exc_info:
            cmd.run()
        assert exc_info.value.exit_code == -1

    def test_run_transport_coupe(self):
        """Vérifie ConnectionFailureError si le transport est inactif."""
        channel = make_channel(status=-1)
        channel.get_transport.return_value.is_active.return_value = False
        cmd = RemoteRunner(make_client(channel), "h:22").command("ls")
        with pytest.raises(ConnectionFailureError):
            cmd.run()

    def test_run_deux_fois(self):
        """Vérifie qu'une session ne sert qu'une fois."""
        channel = make_channel()
        cmd = RemoteRunner(make_client(channel), "h:22").command("ls")
        cmd.run()
        with pytest.raises(CommandStateError):
            cmd.run()
        channel.exec_command.assert_called_once()

    def test_run_journalise(self):
        """Vérifie les messages de log préfixés par l'hôte."""
        logger = MagicMock(spec=Logger)
        channel = make_channel(stdout=b"ok\n")
        runner = RemoteRunner(make_client(channel), "h:22", logger=logger)
        runner.command("uptime").run()
        logger.log_info.assert_any_call("[h:22] Exécution : uptime")
        logger.log_info.assert_any_call("[h:22] Terminée : uptime")
        logger.log_debug.assert_any_call("[h:22] | ok")


class TestRemoteCommandLifecycle:
    """Tests du cycle start/wait d'une commande distante."""

    def setup_method(self):
        self.channel = make_channel(stdout=b"sortie\n")
        self.client = make_client(self.channel)
        self.runner = RemoteRunner(self.client, "h:22")

    def test_stdin_pipe_pas_de_shutdown(self):
        """Vérifie que stdin reste ouvert s'il est relié à un pipe."""
        cmd = self.runner.command("cat")
        cmd.stdin_pipe()
        cmd.start()
        self.channel.shutdown_write.assert_not_called()
        cmd.wait()

    def test_flux_non_lus_vides(self):
        """Vérifie que les flux sans pipe ni sink sont vidés."""
        cmd = self.runner.command("ls")
        cmd.start()
        cmd.wait()
        self.channel.makefile.assert_called_once_with("rb")
        self.channel.makefile_stderr.assert_called_once_with("rb")

    def test_sink_stdout(self):
        """Vérifie la copie de stdout vers un sink."""
        sink = io.BytesIO()
        cmd = self.runner.command("ls")
        cmd.set_stdout(sink)
        cmd.start()
        cmd.wait()
        assert sink.getvalue() == b"sortie\n"

    def test_wait_deux_fois(self):
        """Vérifie que la session n'est libérée qu'une fois."""
        cmd = self.runner.command("ls")
        cmd.start()
        cmd.wait()
        with pytest.raises(CommandStateError):
            cmd.wait()
        self.channel.close.assert_called_once()

    def test_start_apres_fermeture_connexion(self):
        """Vérifie StartFailureError si la connexion a été fermée."""
        cmd = self.runner.command("ls")
        self.runner.close_connection()
        with pytest.raises(StartFailureError):
            cmd.start()
        self.channel.exec_command.assert_not_called()
        self.channel.close.assert_called_once()
        assert cmd.state is CommandState.FINISHED

    def test_exec_refuse(self):
        """Vérifie StartFailureError si la requête exec échoue."""
        self.channel.exec_command.side_effect = paramiko.SSHException("non")
        cmd = self.runner.command("ls")
        with pytest.raises(StartFailureError):
            cmd.start()
        self.channel.close.assert_called_once()

    def test_shutdown_write_en_echec(self):
        """Vérifie StartFailureError si la fin de stdin ne part pas."""
        self.channel.shutdown_write.side_effect = EOFError()
        cmd = self.runner.command("ls")
        with pytest.raises(StartFailureError):
            cmd.start()
        self.channel.close.assert_called_once()
        self.channel.makefile.assert_not_called()
        assert cmd.state is CommandState.FINISHED

    def test_makefile_en_echec(self):
        """Vérifie StartFailureError si un flux de sortie est inaccessible."""
        self.channel.makefile_stderr.side_effect = paramiko.SSHException("x")
        cmd = self.runner.command("ls")
        with pytest.raises(StartFailureError):
            cmd.start()
        self.channel.close.assert_called_once()
        assert cmd.state is CommandState.FINISHED

    def test_liberation_en_echec_commande_reussie(self):
        """Vérifie ResourceReleaseError si seule la libération échoue."""
        self.channel.close.side_effect = OSError("fermeture")
        cmd = self.runner.command("ls")
        cmd.start()
        with pytest.raises(ResourceReleaseError):
            cmd.wait()

    def test_liberation_en_echec_code_non_nul(self):
        """Vérifie que le code retour prime sur l'échec de libération."""
        logger = MagicMock(spec=Logger)
        channel = make_channel(status=1)
        channel.close.side_effect = OSError("fermeture")
        runner = RemoteRunner(make_client(channel), "h:22", logger=logger)
        cmd = runner.command("false")
        cmd.start()
        with pytest.raises(NonZeroExitError):
            cmd.wait()
        messages = [c.args[0] for c in logger.log_error.call_args_list]
        assert any("ResourceReleaseError" in m for m in messages)


def sent_env_requests(channel):
    """Décode les requêtes env envoyées sur le transport simulé."""
    requests = []
    for sent in channel.transport._send_user_message.call_args_list:
        message = paramiko.Message(sent.args[0].asbytes())
        message.get_byte()
        assert message.get_int() == channel.remote_chanid
        assert message.get_text() == "env"
        want_reply = message.get_boolean()
        requests.append((message.get_text(), message.get_text(), want_reply))
    return requests


class TestRemoteCommandEnvironment:
    """Tests de setenv() sur une session."""

    def setup_method(self):
        self.channel = make_channel()
        self.runner = RemoteRunner(make_client(self.channel), "h:22")

    def test_setenv_une_requete_par_variable(self):
        """Vérifie une requête par affectation, coupée au premier '='."""
        cmd = self.runner.command("env")
        cmd.setenv(["A=1", "SANS_EGAL", "B=x=y"])
        assert sent_env_requests(self.channel) == [
            ("A", "1", True),
            ("B", "x=y", True),
        ]
        assert self.channel._wait_for_event.call_count == 2
        self.channel.set_environment_variable.assert_not_called()

    def test_setenv_echec_arrete_le_traitement(self):
        """Vérifie EnvironmentApplyError et l'arrêt au premier refus."""
        self.channel._wait_for_event.side_effect = [
            None,
            paramiko.SSHException("Channel closed."),
            None,
        ]
        cmd = self.runner.command("env")
        with pytest.raises(EnvironmentApplyError) as exc_info:
            cmd.setenv(["A=1", "B=2", "C=3"])
        assert exc_info.value.name == "B"
        assert [r[0] for r in sent_env_requests(self.channel)] == ["A", "B"]

    def test_setenv_canal_ferme(self):
        """Vérifie EnvironmentApplyError sans envoi sur un canal fermé."""
        self.channel.closed = True
        cmd = self.runner.command("env")
        with pytest.raises(EnvironmentApplyError):
            cmd.setenv(["A=1"])
        self.channel.transport._send_user_message.assert_not_called()

    def test_setenv_apres_start(self):
        """Vérifie le refus de setenv après le démarrage."""
        cmd = self.runner.command("env")
        cmd.start()
        with pytest.raises(CommandStateError):
            cmd.setenv(["A=1"])
        cmd.wait()


class TestRemoteSessionRelease:
    """Vérifie qu'aucune session ne reste ouverte après des échecs."""

    def test_sessions_liberees_apres_echecs_repetes(self):
        channels = []

        def open_session():
            channel = make_channel(stderr=b"erreur\n", status=1)
            channels.append(channel)
            return channel

        client = make_client(make_channel())
        client.get_transport().open_session.side_effect = open_session
        runner = RemoteRunner(client, "h:22")

        for _ in range(10):
            with pytest.raises(NonZeroExitError):
                runner.command("false").run()

            cmd = runner.command("ls")
            cmd.stdout_pipe()
            cmd.set_stdout(io.BytesIO())
            with pytest.raises(StartFailureError):
                cmd.start()

            cmd = runner.command("ls")
            channels[-1].exec_command.side_effect = paramiko.SSHException(
                "refus"
            )
            with pytest.raises(StartFailureError):
                cmd.run()

        assert len(channels) == 30
        for channel in channels:
            channel.close.assert_called_once()
