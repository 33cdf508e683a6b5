import pytest

from finance_tracker.vendors import (
    dedupe_words,
    find_similar_vendors,
    is_similar_vendor,
    normalize_vendor_name,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("SQ *BLUE BOTTLE COFFEE OAKLAND CA 04/23", "Blue Bottle Coffee Oakland"),
        ("NETFLIX.COM", "Netflix"),
        ("ACME UTILITIES PPD ID: 1234567890", "Acme Utilities"),
        ("CITY WATER WEB ID: 99887766", "City Water"),
        ("TST* PIZZA PALACE 2024-01-15", "Pizza Palace"),
        ("PAYPAL *SPOTIFY", "Spotify"),
        ("CHASE CARD ending in 4242", "Chase Card"),
        ("SHELL OIL 57444221 SEATTLE WA", "Shell Oil 57444221 Seattle"),
        ("STARBUCKS STARBUCKS STORE #1234", "Starbucks Store"),
        ("AMZN MKTP US*2K3AB1 AMZN.COM/BILL WA", "Amzn Mktp"),
    ],
)
def test_normalize_vendor_name(raw, expected):
    assert normalize_vendor_name(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "SQ *BLUE BOTTLE COFFEE OAKLAND CA 04/23",
        "AMZN MKTP US*2K3AB1 AMZN.COM/BILL WA",
        "ID: 12345",
        "ID: 12345 CA",
        "WEB ID: 123456 NY",
        "PAYPAL * CA",
        "trader joe's #552 portland or",
        "Whole Foods Market",
    ],
)
def test_normalize_vendor_name_is_idempotent(raw):
    once = normalize_vendor_name(raw)
    assert normalize_vendor_name(once) == once


def test_normalize_keeps_original_when_everything_is_stripped():
    assert normalize_vendor_name("ID: 12345") == "Id: 12345"
    assert normalize_vendor_name("") == ""
    assert normalize_vendor_name(None) == ""


def test_fallback_is_cleaned_after_title_casing():
    assert normalize_vendor_name("WEB ID: 123456 NY") == "Ny"
    assert normalize_vendor_name("PAYPAL * CA") == "Ca"


def test_dedupe_words_is_case_insensitive_and_keeps_order():
    assert dedupe_words("Uber uber TRIP Uber help") == "Uber TRIP help"


def test_similar_by_containment():
    assert is_similar_vendor("Starbucks", "Starbucks Store")
    assert is_similar_vendor("starbucks store", "STARBUCKS")


def test_similar_by_token_overlap():
    assert is_similar_vendor("Blue Bottle Coffee", "Blue Bottle Oakland")
    assert not is_similar_vendor("Blue Bottle Coffee", "Red Bottle Tea")


def test_find_similar_vendors_skips_exact_matches():
    existing = ["Starbucks", "starbucks store", "Shell Oil", "Starbucks Store"]
    assert find_similar_vendors("Starbucks Store", existing) == ["Starbucks"]
    assert find_similar_vendors("Target", existing) == []
