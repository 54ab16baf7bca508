"""Email variant classification.

Variants identify which template/subject line of a sequence a contact
received. They feed A/B reporting only and never block attribution.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any


class VariantType(str, Enum):
    """Position of a message within its sequence."""

    MAIN = "main"
    SUBSEQUENCE = "subsequence"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class VariantMatch:
    """Result of classifying a single email."""

    sequence: str
    variant: str
    confidence: float
    type: VariantType

    @property
    def label(self) -> str:
        """Return a display label such as ``V3_New_Method/B``."""
        return f"{self.sequence}/{self.variant}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "sequence": self.sequence,
            "variant": self.variant,
            "confidence": self.confidence,
            "type": self.type.value,
        }


SUBSEQUENCE_INDICATORS = [
    "following up",
    "follow up",
    "wanted to circle back",
    "checking back",
    "hope you had a chance",
    "did you get a chance",
]

SUBSEQUENCE_VARIANTS = [
    ("can view your report and sign up directly via this link below", "A"),
]

MAIN_SEQUENCE_VARIANTS = [
    (re.compile(r"Mechanical royalties for your music are unclaimed", re.IGNORECASE), "A"),
    (re.compile(r"Missing publishing royalties", re.IGNORECASE), "B"),
    (re.compile(r"Unclaimed mechanical royalties", re.IGNORECASE), "C"),
    (re.compile(r"Your music royalties are waiting", re.IGNORECASE), "D"),
]

OLD_METHOD_PATTERN = re.compile(r"mechanical royalties tied to your music", re.IGNORECASE)

UNKNOWN_VARIANT = VariantMatch(
    sequence="Unknown",
    variant="Unknown",
    confidence=0.3,
    type=VariantType.UNKNOWN,
)


def is_subsequence_email(content: str | None) -> bool:
    """Return True if the body reads like a follow-up message."""
    if not content:
        return False
    body = content.lower()
    return any(indicator in body for indicator in SUBSEQUENCE_INDICATORS)


def classify_variant(subject: str | None, content: str | None) -> VariantMatch:
    """Classify an email into a sequence variant.

    Follow-up bodies are checked against subsequence fragments first. Then
    main-sequence subjects are tried in list order, then the legacy subject.

    Args:
        subject: Email subject line.
        content: Email body.

    Returns:
        The first matching VariantMatch, or ``UNKNOWN_VARIANT``.

    Examples:
        >>> classify_variant("Missing publishing royalties for you", "").variant
        'B'
        >>> classify_variant("hello", "").sequence
        'Unknown'
    """
    subject = subject or ""
    content = content or ""

    if is_subsequence_email(content):
        body = content.lower()
        for fragment, variant in SUBSEQUENCE_VARIANTS:
            if fragment in body:
                return VariantMatch(
                    sequence="V3_Positive_Subsequence",
                    variant=variant,
                    confidence=0.9,
                    type=VariantType.SUBSEQUENCE,
                )

    for pattern, variant in MAIN_SEQUENCE_VARIANTS:
        if pattern.search(subject):
            return VariantMatch(
                sequence="V3_New_Method",
                variant=variant,
                confidence=0.9,
                type=VariantType.MAIN,
            )

    if OLD_METHOD_PATTERN.search(subject):
        return VariantMatch(
            sequence="Old_Method",
            variant="A",
            confidence=0.9,
            type=VariantType.MAIN,
        )

    return UNKNOWN_VARIANT
