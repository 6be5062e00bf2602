"""
Notification Composer.

Builds the interview invitation an admin sends to a doctor. Nothing is
delivered from here: the rendered email is returned as a ``mailto:`` link
that opens in the admin's own mail client.

Templates are loaded from config/email_templates.yaml and rendered with
simple str.format_map() substitution.

Usage
-----
    composer: NotificationComposer = Depends(get_notification_composer)
    invite = composer.render_interview_invite(
        doctor_name="Dr Jane Citizen",
        scheduling_link="https://calendly.com/heydoc/interview",
        sender_name="Alex Admin",
    )
    link = build_mailto_link("jane@example.com", invite)
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

import structlog
import yaml
from fastapi import Depends

from ..core.config import Settings, get_settings

log = structlog.get_logger(__name__)

INTERVIEW_TEMPLATE = "interview_invite"
DEFAULT_DOCTOR_NAME = "Doctor"

# Characters encodeURIComponent leaves alone; mail clients expect the same escaping
_MAILTO_SAFE = "-_.!~*'()"

# ---------------------------------------------------------------------------
# Template loading
# ---------------------------------------------------------------------------

_TEMPLATE_CACHE: dict[str, Any] | None = None


def _load_templates(path: str) -> dict[str, Any]:
    """Load email templates from YAML. The file is read once per process."""
    global _TEMPLATE_CACHE  # noqa: PLW0603
    if _TEMPLATE_CACHE is None:
        resolved = Path(path)
        if not resolved.is_absolute():
            # Resolve relative to the project root (the directory holding src/)
            project_root = Path(__file__).parents[3]
            resolved = project_root / path
        with resolved.open(encoding="utf-8") as fh:
            _TEMPLATE_CACHE = yaml.safe_load(fh) or {}
        log.info("email_templates_loaded", path=str(resolved))
    return _TEMPLATE_CACHE


def _invalidate_template_cache() -> None:
    """Force the next load to re-read disk. Intended for tests."""
    global _TEMPLATE_CACHE  # noqa: PLW0603
    _TEMPLATE_CACHE = None


def get_template(name: str, templates_path: str) -> dict[str, str]:
    """Return the raw (un-rendered) subject + body_html + body_text for *name*."""
    tmpl = _load_templates(templates_path).get(name)
    if not tmpl:
        raise ValueError(f"No email template found for '{name}'")
    return {
        "subject": tmpl.get("subject", ""),
        "body_html": tmpl.get("body_html", ""),
        "body_text": tmpl.get("body_text", ""),
    }


def render_template(template: dict[str, str], variables: dict[str, str]) -> dict[str, str]:
    """Substitute ``{placeholders}`` in subject/body with *variables*.

    Unknown placeholders are left as-is. Values are HTML-escaped in
    ``body_html`` only.
    """

    class _SafeMap(dict):  # type: ignore[type-arg]
        def __missing__(self, key: str) -> str:
            return f"{{{key}}}"

    plain = _SafeMap(variables)
    escaped = _SafeMap({name: html.escape(str(value)) for name, value in variables.items()})
    return {
        key: value.format_map(escaped if key == "body_html" else plain)
        for key, value in template.items()
    }


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InterviewInvite:
    subject: str
    body_html: str
    body_text: str = ""


def build_mailto_link(recipient: str, invite: InterviewInvite) -> str:
    """``mailto:`` URL with the percent-encoded subject and HTML body."""
    subject = quote(invite.subject, safe=_MAILTO_SAFE)
    body = quote(invite.body_html, safe=_MAILTO_SAFE)
    return f"mailto:{recipient}?subject={subject}&body={body}"


class NotificationComposer:
    """Renders notification emails from the YAML templates."""

    def __init__(self, settings: Settings) -> None:
        self._templates_path = settings.EMAIL_TEMPLATES_PATH
        self._default_sender = settings.INTERVIEW_SENDER_NAME
        self._support_email = settings.SUPPORT_EMAIL

    def render_interview_invite(
        self,
        doctor_name: str | None,
        scheduling_link: str,
        sender_name: str | None = None,
    ) -> InterviewInvite:
        rendered = render_template(
            get_template(INTERVIEW_TEMPLATE, self._templates_path),
            {
                "doctor_name": doctor_name or DEFAULT_DOCTOR_NAME,
                "scheduling_link": scheduling_link,
                "sender_name": sender_name or self._default_sender,
                "support_email": self._support_email,
            },
        )
        return InterviewInvite(
            subject=rendered["subject"],
            body_html=rendered["body_html"],
            body_text=rendered["body_text"],
        )


def get_notification_composer(
    settings: Settings = Depends(get_settings),
) -> NotificationComposer:
    """FastAPI dependency – returns a NotificationComposer for the current request."""
    return NotificationComposer(settings)
