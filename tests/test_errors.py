"""Tests pour le module errors."""

import unittest
from unittest.mock import MagicMock

from runcmd.errors import (
    ApplicationError,
    ConnectionFailureError,
    EnvironmentApplyError,
    ErrorHandler,
    HostKeyVerificationError,
    InvalidArgumentError,
    LoggerErrorHandler,
    NonZeroExitError,
    ResourceReleaseError,
    RuncmdError,
)
from runcmd.commands.base import split_assignment


class TestExceptions(unittest.TestCase):
    """Tests de la hiérarchie d'exceptions."""

    def test_hierarchie(self):
        self.assertTrue(issubclass(RuncmdError, ApplicationError))
        self.assertTrue(
            issubclass(HostKeyVerificationError, ConnectionFailureError)
        )
        self.assertTrue(issubclass(InvalidArgumentError, ValueError))

    def test_non_zero_exit_code(self):
        error = NonZeroExitError("make test", 2)
        self.assertEqual(error.exit_code, 2)
        self.assertIsNone(error.signal)
        self.assertEqual(error.stderr, "")
        self.assertEqual(str(error), "'make test' terminée avec le code 2")

    def test_non_zero_exit_signal(self):
        error = NonZeroExitError("sleep 30", -1, signal=9)
        self.assertEqual(str(error), "'sleep 30' tuée par le signal 9")

    def test_environment_apply_nom(self):
        error = EnvironmentApplyError("refus", name="LANG")
        self.assertEqual(error.name, "LANG")


class TestLoggerErrorHandler(unittest.TestCase):
    """Tests pour LoggerErrorHandler."""

    def setUp(self):
        self.mock_logger = MagicMock()
        self.handler = LoggerErrorHandler(self.mock_logger, "ls")

    def test_implemente_interface(self):
        self.assertIsInstance(self.handler, ErrorHandler)

    def test_handle_known_error(self):
        """Vérifie le log pour une erreur runcmd."""
        self.handler.handle(ResourceReleaseError("canal"))
        self.mock_logger.log_error.assert_called_once_with(
            "ls : ResourceReleaseError: canal"
        )

    def test_handle_unknown_error(self):
        """Vérifie le log pour une erreur inattendue."""
        self.handler.handle(OSError("pipe"))
        self.mock_logger.log_error.assert_called_once_with(
            "ls : Erreur inattendue: OSError: pipe"
        )

    def test_sans_logger(self):
        """Vérifie que les erreurs sont conservées sans logger."""
        handler = LoggerErrorHandler()
        error = RuntimeError("x")
        handler.handle(error)
        self.assertEqual(handler.handled, [error])

    def test_sans_contexte(self):
        handler = LoggerErrorHandler(self.mock_logger)
        handler.handle(RuncmdError("x"))
        self.mock_logger.log_error.assert_called_once_with("RuncmdError: x")


class TestSplitAssignment(unittest.TestCase):
    """Tests pour split_assignment."""

    def test_premier_egal(self):
        self.assertEqual(split_assignment("A=b=c"), ("A", "b=c"))

    def test_valeur_vide(self):
        self.assertEqual(split_assignment("A="), ("A", ""))

    def test_invalides(self):
        self.assertIsNone(split_assignment("SANS_EGAL"))
        self.assertIsNone(split_assignment("=valeur"))
