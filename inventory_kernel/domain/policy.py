"""
LedgerPolicy -- runtime knobs of the stock ledger.

The kernel never reads configuration itself.  ``inventory_config.bridges``
builds a LedgerPolicy from the active configuration; callers that do not
pass one get the defaults below.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LedgerPolicy:
    """
    Contract:
        - allow_negative_adjustments: adjustments are exempt from the
          non-negative level check when True.
        - default_page_size: limit used when a caller passes none.
        - max_page_size: upper bound every limit is clamped to.
    """

    allow_negative_adjustments: bool = True
    default_page_size: int = 50
    max_page_size: int = 1000

    def __post_init__(self) -> None:
        if self.default_page_size < 1:
            raise ValueError("default_page_size must be at least 1")
        if self.max_page_size < self.default_page_size:
            raise ValueError("max_page_size must be >= default_page_size")

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self.default_page_size
        return max(1, min(int(limit), self.max_page_size))

    @staticmethod
    def clamp_offset(offset: int | None) -> int:
        if offset is None:
            return 0
        return max(0, int(offset))
