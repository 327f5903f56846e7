"""Alertmanager API client and models."""

from __future__ import annotations

from .client import AlertmanagerClient
from .models import Alert, Matcher, Silence, format_matchers

__all__ = ["Alert", "AlertmanagerClient", "Matcher", "Silence", "format_matchers"]
