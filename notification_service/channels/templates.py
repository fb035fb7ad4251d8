"""Message templates for platform notifications.

Every builder is a pure function of user-facing data and a language code.
Languages without a template fall back to English.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from html import escape

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
BRAND = "Youth Connect"


@dataclass(frozen=True)
class RenderedMessage:
    """A notification rendered for every channel.

    Attributes:
        subject: Email subject / push title
        text: Plain-text email body
        html: HTML email body
        sms: Short SMS / push body
        language: Language actually used after fallback
    """

    subject: str
    text: str
    html: str
    sms: str
    language: str


# Each template maps language -> (subject, heading, body, sms). Fields are
# filled with str.format; HTML values are escaped before formatting.
WELCOME: dict[str, tuple[str, str, str, str]] = {
    "en": (
        "Welcome to Youth Connect Uganda!",
        "Welcome to Youth Connect, {name}!",
        "You've successfully joined as {role}. Complete your profile, explore "
        "opportunities and connect with mentors.",
        "Welcome {name}! Joined Youth Connect as {role}. Explore: {site} or *256#",
    ),
    "lg": (
        "Tukusiimye ku Youth Connect Uganda!",
        "Tukusiimye {name}!",
        "Oyingidde mu Youth Connect nga {role}. Jjuza ebikukwatako era onoonye emikisa.",
        "Tukusiimye {name}! Oyingidde mu Youth Connect nga {role}. {site} oba *256#",
    ),
    "lur": (
        "Pito i Youth Connect Uganda!",
        "Pito {name}!",
        "Idonyo i Youth Connect calo {role}.",
        "Pito {name}! Youth Connect calo {role}. {site} onyo *256#",
    ),
    "lgb": (
        "Candiru Youth Connect Uganda!",
        "Candiru {name}!",
        "Mi eji Youth Connect 'diyi ria {role}.",
        "Candiru {name}! Youth Connect 'diyi ria {role}. {site} ote *256#",
    ),
}

APPLICATION_CONFIRMATION: dict[str, tuple[str, str, str, str]] = {
    "en": (
        "Application received: {job_title}",
        "Thanks for applying, {name}!",
        "Your application for {job_title} at {company} has been received. "
        "We'll let you know when its status changes.",
        "Hi {name}, your application for {job_title} at {company} was received. "
        "Track it at {site}",
    ),
    "lg": (
        "Okusaba kwo kufunidwa: {job_title}",
        "Webale okusaba, {name}!",
        "Okusaba kwo okw'omulimu {job_title} ku {company} kufunidwa.",
        "{name}, okusaba kwo okw'omulimu {job_title} ku {company} kufunidwa. {site}",
    ),
}

APPLICATION_STATUS_UPDATE: dict[str, tuple[str, str, str, str]] = {
    "en": (
        "Application update: {job_title}",
        "Hello {name},",
        "Your application for {job_title} is now {status}.{notes}",
        "Hi {name}, your application for {job_title} is now {status}. Details: {site}",
    ),
    "lg": (
        "Amawulire ku kusaba: {job_title}",
        "Gyebale {name},",
        "Okusaba kwo okw'omulimu {job_title} kati kuli {status}.{notes}",
        "{name}, okusaba kwo okw'omulimu {job_title} kati kuli {status}. {site}",
    ),
}

DEADLINE_REMINDER: dict[str, tuple[str, str, str, str]] = {
    "en": (
        "Reminder: {title} closes {deadline}",
        "Don't miss out, {name}!",
        "{title} closes on {deadline}. Submit your application before the deadline.",
        "Reminder {name}: {title} closes on {deadline}. Apply at {site}",
    ),
    "lg": (
        "Kijjukizo: {title} kiggalwa {deadline}",
        "Tosubwa, {name}!",
        "{title} kiggalwa nga {deadline}. Weeyongereyo osabe nga obudde tebunnaggwaako.",
        "Kijjukizo {name}: {title} kiggalwa nga {deadline}. {site}",
    ),
}

USSD_CONFIRMATION: dict[str, str] = {
    "en": "Welcome {name}! Your Youth Connect registration via USSD is complete. "
    "Code: {code}. Access: *256# or {site}.",
    "lg": "Tukusiimye {name}! Okwewandiisa kwo ku Youth Connect kuwedde. "
    "Koodi: {code}. *256# oba {site}.",
}


def resolve_language(available: dict, language: str | None) -> str:
    """Pick the requested language if a template exists, otherwise English."""
    code = (language or DEFAULT_LANGUAGE).strip().lower()
    if code in available:
        return code
    logger.debug(
        "No template for language, falling back",
        extra={"requested": code, "fallback": DEFAULT_LANGUAGE},
    )
    return DEFAULT_LANGUAGE


def _site(base_url: str) -> str:
    return base_url.split("://", 1)[-1].rstrip("/")


def _render(
    templates: dict[str, tuple[str, str, str, str]],
    language: str | None,
    base_url: str,
    **fields: str,
) -> RenderedMessage:
    code = resolve_language(templates, language)
    subject, heading, body, sms = templates[code]
    fields.setdefault("site", _site(base_url))

    escaped = {key: escape(value) for key, value in fields.items()}
    html = (
        '<!DOCTYPE html><html><head><meta charset="UTF-8"></head>'
        '<body style="font-family:Arial;margin:0;padding:20px;background:#f4f4f4;">'
        '<div style="max-width:600px;margin:auto;background:white;padding:30px;border-radius:10px;">'
        f'<h1 style="color:#2E7D32;">{heading.format(**escaped)}</h1>'
        f"<p>{body.format(**escaped)}</p>"
        f'<p><a href="{escape(base_url)}/dashboard">{escaped["site"]}</a></p>'
        '<p style="color:#666;font-size:14px;">No smartphone? Dial <strong>*256#</strong></p>'
        f"<p style=\"color:#666;font-size:14px;\">{BRAND} Uganda</p>"
        "</div></body></html>"
    )

    return RenderedMessage(
        subject=subject.format(**fields),
        text=f"{heading.format(**fields)}\n\n{body.format(**fields)}",
        html=html,
        sms=sms.format(**fields),
        language=code,
    )


def render_welcome(
    first_name: str, role: str, language: str | None, base_url: str
) -> RenderedMessage:
    return _render(WELCOME, language, base_url, name=first_name, role=role.lower())


def render_application_confirmation(
    first_name: str,
    job_title: str,
    company_name: str,
    language: str | None,
    base_url: str,
) -> RenderedMessage:
    return _render(
        APPLICATION_CONFIRMATION,
        language,
        base_url,
        name=first_name,
        job_title=job_title,
        company=company_name,
    )


def render_application_status_update(
    first_name: str,
    job_title: str,
    status: str,
    review_notes: str | None,
    language: str | None,
    base_url: str,
) -> RenderedMessage:
    return _render(
        APPLICATION_STATUS_UPDATE,
        language,
        base_url,
        name=first_name,
        job_title=job_title,
        status=status.replace("_", " ").lower(),
        notes=f" {review_notes}" if review_notes else "",
    )


def render_deadline_reminder(
    first_name: str,
    title: str,
    deadline: date | datetime,
    language: str | None,
    base_url: str,
) -> RenderedMessage:
    return _render(
        DEADLINE_REMINDER,
        language,
        base_url,
        name=first_name,
        title=title,
        deadline=deadline.strftime("%d %b %Y"),
    )


def render_ussd_confirmation(
    user_name: str, confirmation_code: str, language: str | None, base_url: str
) -> str:
    code = resolve_language(USSD_CONFIRMATION, language)
    return USSD_CONFIRMATION[code].format(
        name=user_name, code=confirmation_code, site=_site(base_url)
    )
