"""Exceptions du module credentials."""

from runcmd.errors.exceptions import RuncmdError


class SecretError(RuncmdError):
    """Exception de base pour les erreurs de secrets."""


class SecretNotFoundError(SecretError):
    """Levee quand un secret est absent de toutes les sources."""
