"""Custom validators and types."""

import re
from decimal import Decimal
from typing import Annotated

from pydantic import AfterValidator, Field, PlainSerializer

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{6,15}$")
CIN_PATTERN = re.compile(r"^[0-9A-Z]{5,20}$")


def validate_email(value: str) -> str:
    """Validate an email address and normalize it to lower case."""
    normalized = value.strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Invalid email address")
    return normalized


def validate_phone_number(value: str) -> str:
    """
    Validate and normalize a phone number.

    Accepts local or international numbers with optional spaces, dashes,
    dots or parentheses:
    - +261341234567
    - +261 34 12 345 67
    - 034-12-345-67

    Returns the digits with an optional leading "+": +261341234567
    """
    normalized = re.sub(r"[\s\-\.\(\)]", "", value)

    if not PHONE_PATTERN.match(normalized):
        raise ValueError(
            "Invalid phone number. Use digits with an optional country code (e.g., +261 34 12 345 67)"
        )

    return normalized


def validate_cin(value: str) -> str:
    """Validate a national ID number; spaces are dropped, letters upper-cased."""
    normalized = re.sub(r"\s", "", value).upper()
    if not CIN_PATTERN.match(normalized):
        raise ValueError("Invalid CIN. Use 5 to 20 letters or digits")
    return normalized


Email = Annotated[
    str,
    Field(min_length=3, max_length=255),
    AfterValidator(validate_email),
]

PhoneNumber = Annotated[
    str,
    Field(min_length=6, max_length=30),
    AfterValidator(validate_phone_number),
]

Cin = Annotated[
    str,
    Field(min_length=5, max_length=30),
    AfterValidator(validate_cin),
]

# Amounts travel as JSON numbers, like the console always sent them
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]
