"""E-mail templates for notification events."""
from dataclasses import dataclass
from html import escape
from typing import Any, Dict

from portal.constants import NotificationEvent

PHASE_SUBJECTS = {
    "onboarding": "Je onboarding is klaar om te starten!",
    "design": "We zijn begonnen met je ontwerp!",
    "design_approved": "Je ontwerp is goedgekeurd!",
    "development": "Je website wordt nu gebouwd!",
    "review": "Je website is klaar voor review!",
    "live": "Gefeliciteerd! Je website is live!",
}


@dataclass
class RenderedEmail:
    """A notification ready to hand to the e-mail provider."""
    subject: str
    html: str


def _button(label: str, url: str) -> str:
    return f'<p><a href="{escape(url, quote=True)}">{escape(label)}</a></p>'


def _wrap(title: str, *paragraphs: str) -> str:
    body = "".join(p if p.startswith("<") else f"<p>{escape(p)}</p>" for p in paragraphs)
    return f"<!DOCTYPE html><html><body><h1>{escape(title)}</h1>{body}<p>Webstability</p></body></html>"


def render(event: str, context: Dict[str, Any]) -> RenderedEmail:
    """
    Render a notification event to subject and HTML body.

    Raises:
        ValueError: For an unknown event
    """
    project_id = context.get("projectId", "")
    name = context.get("name") or "daar"

    if event == NotificationEvent.READY_FOR_DESIGN_CLIENT:
        return RenderedEmail(
            subject=f"We gaan aan de slag met het ontwerp van {project_id}",
            html=_wrap(
                "Klaar voor design",
                f"Hoi {name},",
                "Bedankt! We hebben al je materialen ontvangen en starten met het ontwerp.",
            ),
        )

    if event == NotificationEvent.READY_FOR_DESIGN_DEVELOPER:
        return RenderedEmail(
            subject=f"Project {project_id} is klaar voor design",
            html=_wrap(
                "Nieuw project klaar voor design",
                f"{context.get('companyName') or name} heeft de onboarding afgerond.",
            ),
        )

    if event == NotificationEvent.PHASE_CHANGED:
        phase = context.get("phase", "")
        paragraphs = [f"Hoi {name},", f"Je project {project_id} is nu in de fase: {phase}."]
        if context.get("url"):
            paragraphs.append(_button("Bekijk je project", context["url"]))
        return RenderedEmail(
            subject=PHASE_SUBJECTS.get(phase, "Update over je project"),
            html=_wrap("Update over je project", *paragraphs),
        )

    if event == NotificationEvent.PASSWORD_RESET:
        return RenderedEmail(
            subject=f"Wachtwoord resetten voor project {project_id}",
            html=_wrap(
                "Wachtwoord resetten",
                f"Hoi {name},",
                "Klik op de knop om een nieuw wachtwoord in te stellen. Deze link is 1 uur geldig.",
                _button("Nieuw wachtwoord instellen", context.get("url", "")),
                "Heb je geen reset aangevraagd? Dan kun je deze e-mail negeren.",
            ),
        )

    if event == NotificationEvent.PASSWORD_CHANGED:
        return RenderedEmail(
            subject="Wachtwoord gewijzigd - Webstability",
            html=_wrap(
                "Wachtwoord succesvol gewijzigd",
                f"Het wachtwoord van je project {project_id} is gewijzigd.",
                "Heb je dit niet gedaan? Neem dan direct contact met ons op.",
            ),
        )

    raise ValueError(f"Unknown notification event: {event}")
