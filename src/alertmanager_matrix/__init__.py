"""Send Alertmanager alerts and silences to Matrix rooms."""

from __future__ import annotations

__version__ = "0.1.0"
