"""Merchant name normalization.

Bank and card descriptions carry locale prefixes, reference codes and
abbreviations around the actual merchant. These helpers reduce a description
to a comparable merchant identifier and decide whether two descriptions name
the same merchant.
"""

import re
from typing import Optional

from rapidfuzz.distance import Levenshtein

SIMILARITY_THRESHOLD = 0.85
MAX_FUZZY_KEY_LENGTH = 15
MIN_TOKEN_LENGTH = 3
MIN_FUZZY_TOKEN_LENGTH = 4

MERCHANT_ABBREVIATIONS = {
    "facebk": "Facebook",
    "fb": "Facebook",
    "amzn": "Amazon",
    "amazn": "Amazon",
    "google": "Google",
    "googl": "Google",
    "msft": "Microsoft",
    "spotify": "Spotify",
    "netflix": "Netflix",
    "nflx": "Netflix",
    "uber": "Uber",
    "lyft": "Lyft",
    "paypal": "PayPal",
    "pp": "PayPal",
    "dropbox": "Dropbox",
    "slack": "Slack",
    "zoom": "Zoom",
    "adobe": "Adobe",
    "canva": "Canva",
    "shopify": "Shopify",
    "wix": "Wix",
    "godaddy": "GoDaddy",
    "namecheap": "Namecheap",
    "cloudflare": "Cloudflare",
    "digitalocean": "DigitalOcean",
    "heroku": "Heroku",
    "github": "GitHub",
    "gitlab": "GitLab",
    "notion": "Notion",
    "figma": "Figma",
    "linkedin": "LinkedIn",
    "twitter": "Twitter",
    "tiktok": "TikTok",
    "upwork": "Upwork",
    "fiverr": "Fiverr",
    "stripe": "Stripe",
    "square": "Square",
    "intuit": "Intuit",
    "quickbooks": "QuickBooks",
    "xero": "Xero",
    "mailchimp": "Mailchimp",
    "sendgrid": "SendGrid",
    "twilio": "Twilio",
    "aws": "Amazon Web Services",
    "gcp": "Google Cloud",
    "azure": "Microsoft Azure",
}

# Transactional prefixes, Hebrew bank wording first, then English
_PREFIXES = [
    re.compile(r"^העברה\s+ל-?\s*"),
    re.compile(r"^תשלום\s+ל-?\s*"),
    re.compile(r"^הו\"ק\s*"),
    re.compile(r"^הו''ק\s*"),
    re.compile(r"^הפקדה\s*-?\s*"),
    re.compile(r"^משיכת מזומן\s*-?\s*"),
    re.compile(r"^כרטיס אשראי\s*-?\s*"),
    re.compile(r"^ת\. זכות\s*"),
    re.compile(r"^ת\. חובה\s*"),
    re.compile(r"^העברת\s*"),
    re.compile(r"^חיוב\s*"),
    re.compile(r"^זיכוי\s*"),
    re.compile(r"^transfer\s+to\s+", re.IGNORECASE),
    re.compile(r"^payment\s+to\s+", re.IGNORECASE),
    re.compile(r"^standing\s+order\s*-?\s*", re.IGNORECASE),
    re.compile(r"^direct\s+debit\s*-?\s*", re.IGNORECASE),
    re.compile(r"^credit\s+card\s+charge\s*-?\s*", re.IGNORECASE),
    re.compile(r"^atm\s+withdrawal\s*-?\s*", re.IGNORECASE),
    re.compile(r"^deposit\s*-?\s*", re.IGNORECASE),
    re.compile(r"^pos\s+purchase\s*-?\s*", re.IGNORECASE),
]

_STAR_REFERENCE = re.compile(r"\s*\*[A-Z0-9]+$", re.IGNORECASE)
_DASH_REFERENCE = re.compile(r"\s*-[A-Z0-9]{6,}$", re.IGNORECASE)
_DASH_DIGIT_SPLIT = re.compile(r"\s*[-–]\s*\d")
_WIDE_GAP_SPLIT = re.compile(r"\s{2,}")
_PAREN_NUMERIC = re.compile(r"\s*\([^)]*\d+[^)]*\)\s*$")
_TRAILING_STARS = re.compile(r"\s*\*+\s*\d*\s*$")
_TRAILING_DIGIT_RUN = re.compile(r"\s+\d{5,}$")
_KEY_PUNCTUATION = re.compile(r"['\"״׳\-_.,*#/\\()]")
_WHITESPACE = re.compile(r"\s+")


def _expand_abbreviation(text: str) -> Optional[str]:
    lowered = text.lower()
    if lowered in MERCHANT_ABBREVIATIONS:
        return MERCHANT_ABBREVIATIONS[lowered]
    tokens = lowered.split()
    if tokens and tokens[0] in MERCHANT_ABBREVIATIONS:
        return MERCHANT_ABBREVIATIONS[tokens[0]]
    return None


def parse_merchant_name(description: str) -> str:
    """Parse the merchant name out of a bank or card description.

    Strips locale transactional prefixes, trailing reference codes introduced
    by ``*`` or ``-``, long digit runs and parenthetical numeric suffixes,
    then expands known abbreviations (whole string or first token).

    Args:
        description: Raw transaction description

    Returns:
        Cleaned merchant name, or the trimmed description if nothing remains
    """
    if not description:
        return ""

    merchant = description.strip()
    for prefix in _PREFIXES:
        merchant = prefix.sub("", merchant)

    merchant = _STAR_REFERENCE.sub("", merchant)
    merchant = _DASH_REFERENCE.sub("", merchant)
    merchant = _DASH_DIGIT_SPLIT.split(merchant)[0]
    merchant = _WIDE_GAP_SPLIT.split(merchant)[0]
    merchant = _PAREN_NUMERIC.sub("", merchant)
    merchant = _TRAILING_STARS.sub("", merchant)
    merchant = _TRAILING_DIGIT_RUN.sub("", merchant)
    merchant = merchant.strip()

    expanded = _expand_abbreviation(merchant)
    if expanded:
        return expanded

    return merchant or description.strip()


def normalize_merchant_name(merchant: str) -> str:
    """Lowercased, single-spaced, quote-free merchant name for grouping."""
    parsed = parse_merchant_name(merchant)
    normalized = _WHITESPACE.sub(" ", parsed.strip().lower())
    return re.sub(r"['\"״׳]", "", normalized)


def _looks_like_reference(tokens: list[str]) -> bool:
    return bool(tokens) and all(any(ch.isdigit() for ch in token) for token in tokens)


def get_merchant_base_key(description: str) -> str:
    """Comparison key for a description.

    The parsed name is casefolded and stripped of punctuation. When the first
    token has at least three characters and everything after it looks like a
    reference suffix, only the first token is kept.
    """
    parsed = parse_merchant_name(description)
    lowered = parsed.casefold()

    for abbrev, full in MERCHANT_ABBREVIATIONS.items():
        if lowered == full.casefold() or lowered == abbrev:
            return full.casefold()

    key = _KEY_PUNCTUATION.sub("", lowered)
    key = _WHITESPACE.sub(" ", key).strip()

    tokens = key.split(" ")
    if len(tokens) > 1 and len(tokens[0]) >= MIN_TOKEN_LENGTH and _looks_like_reference(tokens[1:]):
        return tokens[0]
    return key


def similarity(a: str, b: str) -> float:
    """Levenshtein similarity: ``1 - distance / max(len(a), len(b))``."""
    if not a and not b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def _first_token(key: str) -> str:
    return key.split(" ")[0] if key else ""


def is_same_merchant(desc1: str, desc2: str) -> bool:
    """Check whether two descriptions name the same merchant.

    Graduated fallback: identical base keys; identical first tokens of at
    least three characters; first tokens expanding to the same known
    abbreviation; similar short keys; similar first tokens of at least four
    characters. The relation is symmetric.
    """
    key1 = get_merchant_base_key(desc1)
    key2 = get_merchant_base_key(desc2)
    if not key1 or not key2:
        return False

    if key1 == key2:
        return True

    first1 = _first_token(key1)
    first2 = _first_token(key2)

    if len(first1) >= MIN_TOKEN_LENGTH and first1 == first2:
        return True

    full1 = MERCHANT_ABBREVIATIONS.get(first1)
    full2 = MERCHANT_ABBREVIATIONS.get(first2)
    if full1 is not None and full1 == full2:
        return True

    if len(key1) <= MAX_FUZZY_KEY_LENGTH and len(key2) <= MAX_FUZZY_KEY_LENGTH:
        if similarity(key1, key2) >= SIMILARITY_THRESHOLD:
            return True

    if len(first1) >= MIN_FUZZY_TOKEN_LENGTH and len(first2) >= MIN_FUZZY_TOKEN_LENGTH:
        if similarity(first1, first2) >= SIMILARITY_THRESHOLD:
            return True

    return False
