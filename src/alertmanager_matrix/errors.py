"""Exception types raised by alertmanager_matrix."""

from __future__ import annotations


class AlertmanagerMatrixError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(AlertmanagerMatrixError):
    """Invalid or missing configuration. Fatal at startup."""


class SendError(AlertmanagerMatrixError):
    """A message could not be delivered to a room."""


class JoinError(AlertmanagerMatrixError):
    """A room could not be joined."""


class AlertmanagerError(AlertmanagerMatrixError):
    """The Alertmanager API returned an error or could not be reached."""


class SyncError(AlertmanagerMatrixError):
    """The initial sync with the homeserver failed."""
