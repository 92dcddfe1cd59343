"""
Tests for the daily journal prompt.
"""

from datetime import date, timedelta

from todotoday.utils.journal_prompts import JOURNAL_PROMPTS, _string_hash, journal_prompt_for


def test_hash_matches_signed_32_bit_arithmetic():
    assert _string_hash("") == 0
    assert _string_hash("a") == 97
    assert _string_hash("ab") == 97 * 31 + 98

    expected = 0
    for char in "2024-03-01":
        expected = expected * 31 + ord(char)
    expected = (expected + 2**31) % 2**32 - 2**31
    assert _string_hash("2024-03-01") == expected


def test_same_day_same_prompt():
    day = date(2024, 3, 1)
    assert journal_prompt_for(day) == journal_prompt_for(date(2024, 3, 1))
    assert journal_prompt_for(day) in JOURNAL_PROMPTS


def test_prompts_vary_across_days():
    start = date(2024, 1, 1)
    prompts = {journal_prompt_for(start + timedelta(days=n)) for n in range(60)}
    assert len(prompts) > 1
