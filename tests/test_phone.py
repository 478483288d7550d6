"""Tests for canonical phone number normalization."""
import pytest

from microlearn.exceptions import InvalidPhoneNumber
from microlearn.services.phone import normalize_phone_number


@pytest.mark.parametrize("raw", [
    "9876543210",
    "09876543210",
    "919876543210",
    "0919876543210",
    "+91 98765 43210",
    "(098) 7654-3210",
    9876543210,
])
def test_normalize_known_patterns(raw):
    result = normalize_phone_number(raw)
    assert result == "+919876543210"
    assert len(result) == 13


def test_normalize_falls_back_to_last_ten_digits():
    assert normalize_phone_number("0044 9876543210") == "+919876543210"


def test_normalize_eleven_digits_without_trunk_zero_uses_last_ten():
    assert normalize_phone_number("19876543210") == "+919876543210"


@pytest.mark.parametrize("raw", [None, "", "12345", "abc", "98765-4321"])
def test_normalize_rejects_short_or_empty(raw):
    with pytest.raises(InvalidPhoneNumber):
        normalize_phone_number(raw)


def test_invalid_phone_is_a_value_error():
    with pytest.raises(ValueError):
        normalize_phone_number("123")


def test_normalize_with_other_country_code():
    assert normalize_phone_number("447911123456", country_code="44") == "+447911123456"
    assert normalize_phone_number("0447911123456", country_code="44") == "+447911123456"
