"""
Cursor encoding and the LedgerPolicy paging clamps.
"""

import pytest

from inventory_kernel.domain.pagination import (
    StockLevelPage,
    decode_cursor,
    encode_cursor,
    next_cursor,
)
from inventory_kernel.domain.policy import LedgerPolicy
from inventory_kernel.exceptions import InvalidCursorError, ValidationError


class TestCursor:
    @pytest.mark.parametrize("cursor", [None, ""])
    def test_empty_cursor_is_start(self, cursor):
        assert decode_cursor(cursor) == 0

    def test_decode_offset(self):
        assert decode_cursor(encode_cursor(150)) == 150

    @pytest.mark.parametrize("cursor", ["abc", "-5", "1.5", " 10"])
    def test_malformed_cursor_rejected(self, cursor):
        with pytest.raises(InvalidCursorError) as exc_info:
            decode_cursor(cursor)
        assert exc_info.value.code == "INVALID_CURSOR"
        assert isinstance(exc_info.value, ValidationError)

    def test_next_cursor_only_after_full_page(self):
        assert next_cursor(0, 50, 50) == "50"
        assert next_cursor(50, 50, 49) is None
        assert next_cursor(100, 50, 0) is None


class TestStockLevelPage:
    def test_has_more(self):
        assert StockLevelPage(items=(), next_cursor="10").has_more
        assert not StockLevelPage(items=(), next_cursor=None).has_more

    def test_len(self):
        assert len(StockLevelPage(items=(), next_cursor=None)) == 0


class TestLedgerPolicy:
    def test_defaults(self):
        policy = LedgerPolicy()
        assert policy.allow_negative_adjustments is True
        assert policy.clamp_limit(None) == 50

    @pytest.mark.parametrize(
        "limit,expected",
        [(0, 1), (-10, 1), (1, 1), (200, 200), (1000, 1000), (5000, 1000)],
    )
    def test_clamp_limit(self, limit, expected):
        assert LedgerPolicy().clamp_limit(limit) == expected

    @pytest.mark.parametrize("offset,expected", [(None, 0), (-3, 0), (0, 0), (7, 7)])
    def test_clamp_offset(self, offset, expected):
        assert LedgerPolicy.clamp_offset(offset) == expected

    def test_custom_page_sizes(self):
        policy = LedgerPolicy(default_page_size=10, max_page_size=20)
        assert policy.clamp_limit(None) == 10
        assert policy.clamp_limit(50) == 20

    def test_invalid_page_sizes_rejected(self):
        with pytest.raises(ValueError):
            LedgerPolicy(default_page_size=0)
        with pytest.raises(ValueError):
            LedgerPolicy(default_page_size=100, max_page_size=10)
