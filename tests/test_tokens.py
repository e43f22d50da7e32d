"""Tests for the token estimator."""

from __future__ import annotations

import math

from webreader.crawler.tokens import estimate_tokens


class TestEstimateTokens:
    def test_empty_string_is_zero(self) -> None:
        assert estimate_tokens("") == 0

    def test_single_character_is_one(self) -> None:
        assert estimate_tokens("a") == 1

    def test_ascii_uses_four_chars_per_token(self) -> None:
        sentence = "The quick brown fox jumps over the lazy dog."
        assert len(sentence) == 44
        assert estimate_tokens(sentence) == 11

    def test_rounds_up(self) -> None:
        assert estimate_tokens("abcde") == 2

    def test_mostly_cjk_uses_cjk_ratio(self) -> None:
        text = "日本語のテキストです"
        assert estimate_tokens(text) == math.ceil(len(text) / 1.5)

    def test_mixed_text_below_threshold_uses_mixed_ratio(self) -> None:
        text = "This sentence mentions 東京 once."
        assert estimate_tokens(text) == math.ceil(len(text) / 3.0)

    def test_whitespace_does_not_count_towards_cjk_ratio(self) -> None:
        # 4 CJK out of 8 non-whitespace characters (50%) despite lots of spaces.
        text = "漢字 漢字          abcd"
        assert estimate_tokens(text) == math.ceil(len(text) / 1.5)

    def test_whitespace_only_is_at_least_one(self) -> None:
        assert estimate_tokens("   ") == 1

    def test_deterministic(self) -> None:
        text = "Repeatable estimate " * 50
        assert estimate_tokens(text) == estimate_tokens(text)
