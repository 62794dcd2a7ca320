"""Detection label to internal category mapping and priority tiers."""

from enum import StrEnum

DETECTION_CATEGORY_MAP: dict[str, str] = {
    "bache": "POTHOLE",
    "grieta": "CRACK",
    "alcantarilla": "MANHOLE",
    "basura": "GARBAGE",
    "iluminacion": "LIGHTING",
    "otro": "OTHER",
}

CATEGORY_CODE_TO_DETECTION: dict[str, str] = {
    code: label for label, code in DETECTION_CATEGORY_MAP.items()
}

HIGH_PRIORITY_CONFIDENCE = 0.90
MEDIUM_PRIORITY_CONFIDENCE = 0.70


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def map_category(label: str | None) -> str | None:
    """Internal category code for a detection label, or None if unknown."""
    if not label:
        return None
    return DETECTION_CATEGORY_MAP.get(label)


def detection_label_for(code: str) -> str | None:
    """Detection label for an internal category code."""
    return CATEGORY_CODE_TO_DETECTION.get(code)


def priority_for(confidence: float) -> Priority:
    """Priority tier for a detection confidence. Boundaries go to the higher tier."""
    if confidence >= HIGH_PRIORITY_CONFIDENCE:
        return Priority.HIGH
    if confidence >= MEDIUM_PRIORITY_CONFIDENCE:
        return Priority.MEDIUM
    return Priority.LOW
