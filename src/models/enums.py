from __future__ import annotations

from enum import StrEnum


class EligibilityStatus(StrEnum):
    __slots__ = ()

    ELIGIBLE = "eligible"
    PARTIALLY_ELIGIBLE = "partially_eligible"
    NOT_ELIGIBLE = "not_eligible"

    @property
    def priority(self) -> int:
        """Merge precedence: eligible (3) > partially_eligible (2) > not_eligible (1)."""
        return _STATUS_PRIORITY[self]


_STATUS_PRIORITY: dict[EligibilityStatus, int] = {
    EligibilityStatus.ELIGIBLE: 3,
    EligibilityStatus.PARTIALLY_ELIGIBLE: 2,
    EligibilityStatus.NOT_ELIGIBLE: 1,
}
