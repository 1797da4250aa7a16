"""Matching configuration.

Thresholds and tolerances are passed explicitly into every batch run so that
runs are deterministic and testable in isolation. Out-of-range values are
clamped to the nearest valid bound instead of being rejected.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_DATE_TOLERANCE_DAYS = 2
DEFAULT_AMOUNT_TOLERANCE_PERCENT = 2.0
DEFAULT_AUTO_APPROVE_THRESHOLD = 85
DEFAULT_CANDIDATE_THRESHOLD = 50
DEFAULT_DATE_RANGE_DAYS = 30
DEFAULT_MAX_CANDIDATES = 10

MAX_WINDOW_DAYS = 365


class DuplicatePolicy(str, Enum):
    """What to do when a file or invoice looks like a duplicate."""

    WARN = "warn"
    BLOCK = "block"


def _clamp(name: str, value, low, high):
    if value < low:
        logger.warning("%s=%s below %s, clamping", name, value, low)
        return low
    if value > high:
        logger.warning("%s=%s above %s, clamping", name, value, high)
        return high
    return value


@dataclass(frozen=True)
class MatchingSettings:
    """Owner-configurable matching thresholds.

    Attributes:
        date_tolerance_days: CC-bank: max days between card billing date and bank charge
        amount_tolerance_percent: CC-bank: max % gap between card total and bank charge
        auto_approve_threshold: Line items: score at/above which a match is applied
        candidate_threshold: Line items: score below which a transaction is not offered
        date_range_days: Line items: transaction search window around the line item date
        max_candidates: Line items: suggestions kept per line item
        duplicate_policy: Whether file/invoice duplicates warn or block
    """

    date_tolerance_days: int = DEFAULT_DATE_TOLERANCE_DAYS
    amount_tolerance_percent: float = DEFAULT_AMOUNT_TOLERANCE_PERCENT
    auto_approve_threshold: int = DEFAULT_AUTO_APPROVE_THRESHOLD
    candidate_threshold: int = DEFAULT_CANDIDATE_THRESHOLD
    date_range_days: int = DEFAULT_DATE_RANGE_DAYS
    max_candidates: int = DEFAULT_MAX_CANDIDATES
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.WARN

    def __post_init__(self):
        set_ = object.__setattr__
        set_(self, "date_tolerance_days", _clamp("date_tolerance_days", int(self.date_tolerance_days), 0, MAX_WINDOW_DAYS))
        set_(
            self,
            "amount_tolerance_percent",
            _clamp("amount_tolerance_percent", float(self.amount_tolerance_percent), 0.0, 100.0),
        )
        set_(self, "candidate_threshold", _clamp("candidate_threshold", int(self.candidate_threshold), 0, 100))
        set_(self, "auto_approve_threshold", _clamp("auto_approve_threshold", int(self.auto_approve_threshold), 0, 100))
        # The auto-approve bar can never sit below the candidate bar
        if self.auto_approve_threshold < self.candidate_threshold:
            logger.warning(
                "auto_approve_threshold=%s below candidate_threshold=%s, clamping",
                self.auto_approve_threshold,
                self.candidate_threshold,
            )
            set_(self, "auto_approve_threshold", self.candidate_threshold)
        set_(self, "date_range_days", _clamp("date_range_days", int(self.date_range_days), 0, MAX_WINDOW_DAYS))
        set_(self, "max_candidates", _clamp("max_candidates", int(self.max_candidates), 1, 100))
        set_(self, "duplicate_policy", DuplicatePolicy(self.duplicate_policy))

    def with_overrides(self, **overrides) -> "MatchingSettings":
        """Return a copy with the non-None overrides applied (and clamped)."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)
