"""
Transactional email via the Resend HTTP API.

Only the owner match notification is sent from this service.
"""

from typing import Optional

import requests
import structlog

from pixiedvc.config import RESEND_API_KEY, RESEND_FROM_EMAIL
from pixiedvc.metrics import owner_emails

logger = structlog.get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
REQUEST_TIMEOUT = 10


def send_resend_email(to: str, subject: str, body: str, context: str) -> bool:
    """
    Post a plain-text email to Resend.

    Args:
        to (str): Recipient address.
        subject (str): Subject line.
        body (str): Plain-text body.
        context (str): Short label used in log events.

    Returns:
        bool: True if sent, False if skipped because no API key is configured.

    Raises:
        requests.HTTPError: If Resend rejects the request.
    """
    if not RESEND_API_KEY:
        logger.warning("email_skipped_missing_api_key", context=context)
        return False

    res = requests.post(
        RESEND_API_URL,
        headers={
            "Authorization": f"Bearer {RESEND_API_KEY}",
            "Content-Type": "application/json",
        },
        json={"from": RESEND_FROM_EMAIL, "to": to, "subject": subject, "text": body},
        timeout=REQUEST_TIMEOUT,
    )
    res.raise_for_status()

    logger.info("email_sent", context=context, status_code=res.status_code)
    return True


def build_owner_match_email(
    owner_name: Optional[str],
    resort_name: Optional[str],
    check_in: Optional[str],
    check_out: Optional[str],
    total_points: Optional[int],
    lead_guest_name: Optional[str],
    lead_guest_email: Optional[str],
    accept_url: Optional[str],
    decline_url: Optional[str],
) -> tuple[str, str]:
    """Return (subject, body) for the owner match notification."""
    subject = (
        f"Guest request waiting at {resort_name}"
        if resort_name
        else "New PixieDVC guest request to review"
    )
    resort = resort_name or "your resort"
    guest = lead_guest_name or "a guest"
    dates = f"{check_in} → {check_out}" if check_in and check_out else "the requested dates"
    points_label = f"{total_points:,} pts" if total_points else "the required points"

    action_lines = []
    if accept_url:
        action_lines.append(f"Accept booking: {accept_url}")
    if decline_url:
        action_lines.append(f"Decline booking: {decline_url}")
    if not action_lines:
        action_lines.append("Log in to the PixieDVC owner portal to accept or decline.")

    lines = [
        f"Hi {owner_name or 'PixieDVC owner'},",
        "",
        f"We found {guest} who needs a {resort} stay ({dates}).",
        f"• Points needed: {points_label}",
    ]
    if lead_guest_email:
        lines.append(f"• Lead guest contact: {lead_guest_email}")
    lines += [
        "",
        "Please confirm within 1 hour so we can lock in the reservation.",
        "",
        *action_lines,
        "",
        "Thanks for sharing your points!",
        "",
        "PixieDVC Concierge",
    ]
    return subject, "\n".join(lines)


def send_owner_match_email(
    to: str,
    owner_name: Optional[str],
    resort_name: Optional[str],
    check_in: Optional[str],
    check_out: Optional[str],
    total_points: Optional[int],
    lead_guest_name: Optional[str],
    lead_guest_email: Optional[str],
    accept_url: str,
    decline_url: str,
) -> None:
    """
    Notify an owner that a guest booking was matched to their points.

    Raises:
        requests.RequestException: On transport or HTTP errors.
    """
    subject, body = build_owner_match_email(
        owner_name=owner_name,
        resort_name=resort_name,
        check_in=check_in,
        check_out=check_out,
        total_points=total_points,
        lead_guest_name=lead_guest_name,
        lead_guest_email=lead_guest_email,
        accept_url=accept_url,
        decline_url=decline_url,
    )

    sent = send_resend_email(to, subject, body, context="owner_match_email")
    owner_emails.labels(status="sent" if sent else "skipped").inc()
