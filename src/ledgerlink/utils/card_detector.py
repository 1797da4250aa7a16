"""Detect credit card settlement charges in bank descriptions."""

import re
from typing import Optional

CARD_KEYWORDS = (
    "כרטיס",
    "ויזא",
    "ויזה",
    "visa",
    "מאסטרקארד",
    "mastercard",
    "אמריקן אקספרס",
    "amex",
    "ישראכרט",
    "isracard",
    "לאומי קארד",
    "מקס",
    "כאל",
    "חיוב לכרטיס",
    "credit card",
    "card",
)

_FOUR_DIGITS = re.compile(r"(?<!\d)\d{4}(?!\d)")


def detect_credit_card_charge(description: str) -> Optional[str]:
    """Return the card's last four digits if the description is a card charge.

    The description must contain a card keyword; the last standalone
    four-digit group is taken as the card's last four.
    """
    if not description:
        return None

    lowered = description.lower()
    if not any(keyword in lowered for keyword in CARD_KEYWORDS):
        return None

    groups = _FOUR_DIGITS.findall(description)
    return groups[-1] if groups else None
