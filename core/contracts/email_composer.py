"""Negotiation Email Composer.

Assembles the subject and body of a negotiation email from a list of
negotiation points. Pure text assembly: no network, no persistence.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

from core.contracts.negotiation import NegotiationPoint, NegotiationPriority, group_by_priority
from core.contracts.taxonomy import humanize_clause_type

logger = logging.getLogger("creatorlens.email_composer")


class Tone(str, Enum):
    """Tone of the outreach email."""
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    ASSERTIVE = "assertive"


@dataclass(frozen=True)
class ToneTemplate:
    """Fixed text pieces for one tone. ``{creator_name}``/``{brand_name}`` are filled in."""
    subject: str
    greeting: str
    opening: str
    closing: str


TONE_TEMPLATES: dict[Tone, ToneTemplate] = {
    Tone.PROFESSIONAL: ToneTemplate(
        subject="Contract Review & Suggested Modifications - {creator_name}",
        greeting="Dear {brand_name} team,",
        opening=(
            "Thank you for the collaboration opportunity. I've reviewed the agreement and "
            "would like to discuss some modifications to ensure a successful partnership."
        ),
        closing="I appreciate your consideration of these points and look forward to your response.",
    ),
    Tone.FRIENDLY: ToneTemplate(
        subject="Quick questions about our collaboration agreement - {creator_name}",
        greeting="Hi there!",
        opening=(
            "I'm really excited about our upcoming collaboration! I've reviewed the contract "
            "and just have a few suggestions to make sure everything works smoothly for both of us."
        ),
        closing="Thanks for understanding, and I'm looking forward to creating amazing content together!",
    ),
    Tone.ASSERTIVE: ToneTemplate(
        subject="Contract Review & Required Modifications - {creator_name}",
        greeting="Hello,",
        opening=(
            "I've completed my review of the collaboration agreement and identified several "
            "points that need to be addressed before I can proceed."
        ),
        closing=(
            "These modifications are necessary for me to move forward. I'm confident we can "
            "reach an agreement that works for both parties."
        ),
    ),
}

SECTION_HEADINGS: list[tuple[NegotiationPriority, str]] = [
    (NegotiationPriority.MUST_HAVE, "Critical Requirements:"),
    (NegotiationPriority.IMPORTANT, "Important Suggestions:"),
    (NegotiationPriority.NICE_TO_HAVE, "Additional Considerations:"),
]

DEFAULT_CREATOR_NAME = "Creator"
DEFAULT_BRAND_NAME = "Brand"


class EmailTemplate(BaseModel):
    """Composed negotiation email."""
    subject: str
    body: str
    tone: Tone = Tone.PROFESSIONAL


def resolve_tone(tone: Any) -> Tone:
    """Map a tone value to a Tone, falling back to professional."""
    if isinstance(tone, Tone):
        return tone
    try:
        return Tone(str(tone).lower().strip())
    except ValueError:
        logger.warning(f"Unknown email tone '{tone}', using professional")
        return Tone.PROFESSIONAL


def format_point(index: int, point: NegotiationPoint) -> str:
    """Format one numbered point line plus its proposed change."""
    return (
        f"{index}. {humanize_clause_type(point.clause_type)}: {point.reasoning}\n"
        f"   Proposed change: {point.proposed_change}\n"
    )


def compose_negotiation_email(
    points: list[NegotiationPoint],
    tone: Tone | str = Tone.PROFESSIONAL,
    brand_name: str = "",
    creator_name: str = "",
) -> EmailTemplate:
    """Compose a negotiation email.

    Args:
        points: Negotiation points in display order.
        tone: professional, friendly or assertive. Unknown values fall back
            to professional.
        brand_name: Brand addressed by the email.
        creator_name: Creator signing the email.

    Returns:
        EmailTemplate with non-empty subject and body.
    """
    resolved = resolve_tone(tone)
    template = TONE_TEMPLATES[resolved]
    names = {
        "creator_name": creator_name or DEFAULT_CREATOR_NAME,
        "brand_name": brand_name or DEFAULT_BRAND_NAME,
    }

    buckets = group_by_priority(points)
    sections = []
    for priority, heading in SECTION_HEADINGS:
        bucket = buckets[priority]
        if not bucket:
            continue
        lines = [format_point(i, point) for i, point in enumerate(bucket, start=1)]
        sections.append((heading + "\n" + "\n".join(lines)).rstrip())

    parts = [template.greeting.format(**names), template.opening.format(**names)]
    parts.extend(sections)
    parts.append(template.closing.format(**names))
    parts.append(f"Best regards,\n{names['creator_name']}")
    body = "\n\n".join(parts)

    subject = template.subject.format(**names)

    logger.info(
        f"Negotiation email composed: tone={resolved.value} points={len(points)} "
        f"subject_length={len(subject)} body_length={len(body)}"
    )
    return EmailTemplate(subject=subject, body=body, tone=resolved)
