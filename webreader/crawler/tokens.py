"""Cheap, deterministic token estimate used for crawl budgets.

Not a tokenizer: the estimate divides the character count by an average
chars-per-token figure chosen from the script mix of the text, and rounds
up so a budget is more likely to stop early than to overshoot.
"""

from __future__ import annotations

import math
import re

# CJK punctuation, Hiragana, Katakana, CJK Unified Ideographs, Hangul
# syllables, halfwidth/fullwidth forms.
_CJK_RE = re.compile(
    "[\u3000-\u303f\u3040-\u309f\u30a0-\u30ff\u4e00-\u9faf\uac00-\ud7af\uff00-\uffef]"
)
_WHITESPACE_RE = re.compile(r"\s")

CJK_THRESHOLD = 0.3
CHARS_PER_TOKEN_ENGLISH = 4.0
CHARS_PER_TOKEN_MIXED = 3.0
CHARS_PER_TOKEN_CJK = 1.5


def _chars_per_token(text: str) -> float:
    cjk_count = len(_CJK_RE.findall(text))
    if cjk_count == 0:
        return CHARS_PER_TOKEN_ENGLISH

    non_ws = len(_WHITESPACE_RE.sub("", text))
    if non_ws == 0:
        return CHARS_PER_TOKEN_ENGLISH

    if cjk_count / non_ws >= CJK_THRESHOLD:
        return CHARS_PER_TOKEN_CJK
    return CHARS_PER_TOKEN_MIXED


def estimate_tokens(text: str) -> int:
    """Estimate how many LLM tokens *text* costs.

    ``0`` for an empty string, otherwise at least ``1``.
    """
    if not text:
        return 0
    return max(1, math.ceil(len(text) / _chars_per_token(text)))
