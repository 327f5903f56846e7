"""Rendering of alerts and silences as Matrix messages."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from jinja2 import Environment, StrictUndefined, Template, TemplateError

from .alertmanager.models import SILENCE_STATE_EXPIRED, Alert, Silence
from .errors import ConfigError

DEFAULT_TEXT_TEMPLATE = (
    "{% for alert in alerts %}"
    "{{ alert.status_string|icon }} {{ alert.status_string|upper }} "
    "{{ alert.alert_name }}: {{ alert.summary }}"
    "{% if alert.fingerprint %} ({{ alert.fingerprint }}){% endif %}"
    "{% if show_labels %}, labels: {{ alert.label_string }}{% endif %}\n"
    "{% endfor %}"
)
DEFAULT_HTML_TEMPLATE = (
    "{% for alert in alerts %}"
    '<font color="{{ alert.status_string|color }}">'
    "{{ alert.status_string|icon }} <b>{{ alert.status_string|upper }}</b> "
    "{{ alert.alert_name }}:</font> {{ alert.summary }}"
    "{% if alert.fingerprint %} ({{ alert.fingerprint }}){% endif %}"
    "{% if show_labels %}<br/><b>Labels:</b> "
    "<code>{{ alert.label_string }}</code>{% endif %}<br/>"
    "{% endfor %}"
)

DEFAULT_COLORS: Mapping[str, str] = {
    "alert": "black",
    "information": "blue",
    "info": "blue",
    "warning": "orange",
    "critical": "red",
    "error": "red",
    "resolved": "green",
    "silenced": "gray",
}
DEFAULT_ICONS: Mapping[str, str] = {
    "alert": "🔔️",
    "information": "ℹ️",
    "info": "ℹ️",
    "warning": "⚠️",
    "critical": "🚨",
    "error": "🚨",
    "resolved": "✅",
    "silenced": "🔕",
}
UNKNOWN_ICON = "❔"
UNKNOWN_COLOR = "gray"

SILENCE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


class Formatter:
    """Formats alerts with text/HTML templates and a set of icons and colors.

    The default templates, colors and icons are used for any argument left as
    None. Besides the Jinja2 builtins (``upper``, ``lower``, ...) the
    templates can use these filters:

        icon:  returns the icon for the given status.
        color: returns the color for the given status.
        title: uppercases every letter. This replaces the Jinja2 builtin,
               which only capitalizes the first letter of each word.

    Templates are rendered with ``alerts`` (a list of Alert) and
    ``show_labels`` (bool) in scope.
    """

    def __init__(
        self,
        text_template: str | None = None,
        html_template: str | None = None,
        colors: Mapping[str, str] | None = None,
        icons: Mapping[str, str] | None = None,
    ) -> None:
        self.colors = dict(DEFAULT_COLORS if colors is None else colors)
        self.icons = dict(DEFAULT_ICONS if icons is None else icons)
        self._text = self._compile(
            text_template or DEFAULT_TEXT_TEMPLATE, autoescape=False
        )
        self._html = self._compile(
            html_template or DEFAULT_HTML_TEMPLATE, autoescape=True
        )

    def _compile(self, source: str, *, autoescape: bool) -> Template:
        env = Environment(
            autoescape=autoescape,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        env.filters["icon"] = self.icon
        env.filters["color"] = self.color
        env.filters["title"] = str.upper
        try:
            return env.from_string(source)
        except TemplateError as exc:
            raise ConfigError(f"invalid template: {exc}") from exc

    def icon(self, status: str) -> str:
        return self.icons.get(status, UNKNOWN_ICON)

    def color(self, status: str) -> str:
        return self.colors.get(status, UNKNOWN_COLOR)

    def format_alerts(
        self, alerts: Sequence[Alert], show_labels: bool = False
    ) -> tuple[str, str]:
        """Format alerts as plain text and HTML.

        If rendering fails, the error text is returned as both bodies.
        """
        context = {"alerts": list(alerts), "show_labels": show_labels}
        try:
            plain = self._text.render(context)
            html = self._html.render(context)
        except TemplateError as exc:
            return str(exc), str(exc)
        return plain, html


def format_silences(silences: Iterable[Silence], state: str) -> str:
    """Format the silences in the given state as Markdown."""
    md = ""
    for silence in silences:
        if silence.state != state:
            continue
        end = "Ended" if silence.state == SILENCE_STATE_EXPIRED else "Ends"
        ends_at = (
            silence.ends_at.strftime(SILENCE_TIME_FORMAT)
            if silence.ends_at is not None
            else "unknown"
        )
        md += (
            f"**Silence {silence.id}**  \n"
            f"{end} at {ends_at}  \n"
            f"Matches:`{silence.matcher_string}`\n\n"
        )
    return md
