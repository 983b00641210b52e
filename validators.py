import re
from datetime import date, datetime
from typing import Optional

PHONE_PATTERN = re.compile(r"^7\d{10}$")
MIN_PUBLICATION_YEAR = 1800


class PhoneValidator:
    """Reader phone numbers: country code 7 followed by exactly 10 digits."""

    @staticmethod
    def normalize_phone(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return str(raw).strip()

    @staticmethod
    def is_valid_phone(phone: Optional[str]) -> bool:
        if not phone:
            return False
        return PHONE_PATTERN.match(PhoneValidator.normalize_phone(phone)) is not None


class DateValidator:

    @staticmethod
    def parse_date(value: Optional[str]) -> Optional[date]:
        """Parse a plain YYYY-MM-DD string; None if it is not one."""
        if not value:
            return None
        try:
            return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
        except ValueError:
            return None

    @staticmethod
    def is_valid_date(value: Optional[str]) -> bool:
        return DateValidator.parse_date(value) is not None


class BookFormValidator:
    """Plausibility checks the entry form applies before a book is submitted.

    The server stores whatever it is given; these only run client-side.
    """

    @staticmethod
    def _is_non_empty(text: Optional[str]) -> bool:
        return text is not None and bool(str(text).strip())

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return BookFormValidator._is_non_empty(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        return BookFormValidator._is_non_empty(author)

    @staticmethod
    def validate_publication_year(year: Optional[int], today: Optional[date] = None) -> bool:
        if year is None:
            return False
        try:
            year = int(year)
        except (TypeError, ValueError):
            return False
        today = today or date.today()
        return MIN_PUBLICATION_YEAR <= year <= today.year + 1

    @staticmethod
    def validate_page_count(pages: Optional[int]) -> bool:
        if pages is None:
            return False
        try:
            return int(pages) >= 1
        except (TypeError, ValueError):
            return False
