"""Module de gestion des erreurs."""

from runcmd.errors.base import ErrorHandler
from runcmd.errors.exceptions import (ApplicationError,
                                      RuncmdError,
                                      InvalidArgumentError,
                                      ConnectionFailureError,
                                      HostKeyVerificationError,
                                      AuthenticationFailureError,
                                      StartFailureError,
                                      CommandStateError,
                                      EnvironmentApplyError,
                                      NonZeroExitError,
                                      StreamFailureError,
                                      ResourceReleaseError)
from runcmd.errors.logger_handler import LoggerErrorHandler


__all__ = [
    "ApplicationError",
    "RuncmdError",
    "InvalidArgumentError",
    "ConnectionFailureError",
    "HostKeyVerificationError",
    "AuthenticationFailureError",
    "StartFailureError",
    "CommandStateError",
    "EnvironmentApplyError",
    "NonZeroExitError",
    "StreamFailureError",
    "ResourceReleaseError",
    "ErrorHandler",
    "LoggerErrorHandler",
]
