from datetime import date

from validators import BookFormValidator, DateValidator, PhoneValidator


def test_phone_validation():
    assert PhoneValidator.is_valid_phone("79001234567")
    assert PhoneValidator.is_valid_phone(" 79001234567 ")

    assert not PhoneValidator.is_valid_phone("89001234567")  # wrong country code
    assert not PhoneValidator.is_valid_phone("7900123456")  # too short
    assert not PhoneValidator.is_valid_phone("790012345678")  # too long
    assert not PhoneValidator.is_valid_phone("+79001234567")
    assert not PhoneValidator.is_valid_phone("")
    assert not PhoneValidator.is_valid_phone(None)


def test_date_parsing():
    assert DateValidator.parse_date("1828-09-09") == date(1828, 9, 9)
    assert DateValidator.parse_date("2024-02-30") is None
    assert DateValidator.parse_date("09.09.1828") is None
    assert not DateValidator.is_valid_date(None)


def test_book_form_ranges():
    today = date(2025, 6, 1)
    assert BookFormValidator.validate_publication_year(1800, today)
    assert BookFormValidator.validate_publication_year(2026, today)
    assert not BookFormValidator.validate_publication_year(1799, today)
    assert not BookFormValidator.validate_publication_year(2027, today)
    assert not BookFormValidator.validate_publication_year(None, today)

    assert BookFormValidator.validate_page_count(1)
    assert not BookFormValidator.validate_page_count(0)

    assert BookFormValidator.validate_title("War and Peace")
    assert not BookFormValidator.validate_title("   ")
    assert not BookFormValidator.validate_author(None)


def test_book_form_rejects_non_numeric_values():
    assert BookFormValidator.validate_publication_year("1869")
    assert not BookFormValidator.validate_publication_year("19x9")
    assert not BookFormValidator.validate_publication_year([1869])
    assert not BookFormValidator.validate_page_count("many")
    assert not BookFormValidator.validate_page_count(object())
