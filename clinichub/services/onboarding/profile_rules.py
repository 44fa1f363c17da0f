"""
Format rules for business profile and legal fields.
"""

import re
from datetime import datetime, timezone
from typing import Any, List, Mapping

VAT_PATTERN = re.compile(r"^\d{15}$")
CR_PATTERN = re.compile(r"^\d{10}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_YEAR_ESTABLISHED = 1900
MAX_STATEMENT_LENGTH = 1000
MAX_NAME_LENGTH = 255


def is_valid_vat_number(value: str) -> bool:
    return not value or bool(VAT_PATTERN.match(value))


def is_valid_cr_number(value: str) -> bool:
    return not value or bool(CR_PATTERN.match(value))


def profile_errors(fields: Mapping[str, Any]) -> List[str]:
    """Violations in one entity's flat profile fields; empty values are skipped."""
    errors = []

    year = fields.get("year_established")
    if year:
        current_year = datetime.now(timezone.utc).year
        if year < MIN_YEAR_ESTABLISHED or year > current_year:
            errors.append(f"Year established must be between {MIN_YEAR_ESTABLISHED} and {current_year}")

    for field, label in (("mission", "Mission statement"), ("vision", "Vision statement")):
        value = fields.get(field)
        if value and len(value) > MAX_STATEMENT_LENGTH:
            errors.append(f"{label} cannot exceed {MAX_STATEMENT_LENGTH} characters")

    ceo_name = fields.get("ceo_name")
    if ceo_name and len(ceo_name) > MAX_NAME_LENGTH:
        errors.append(f"CEO name cannot exceed {MAX_NAME_LENGTH} characters")

    email = fields.get("email")
    if email and not EMAIL_PATTERN.match(email):
        errors.append(f"Invalid email address: {email}")

    if not is_valid_vat_number(fields.get("vat_number")):
        errors.append("Invalid VAT number format")

    if not is_valid_cr_number(fields.get("cr_number")):
        errors.append("Invalid Commercial Registration number format")

    return errors
