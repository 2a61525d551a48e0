"""
Form validation for the auth flows

Every validator returns a dict of field name -> error message; an empty dict
means the form may be sent to the backend.
"""

import re
from typing import Dict, Optional

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
MIN_PASSWORD_LENGTH = 6
OTP_LENGTH = 6


class FormValidationError(Exception):
    """Raised when a form fails client-side checks"""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("Validation failed")
        self.errors = errors


def validate_email(email: str) -> Optional[str]:
    if not email or not email.strip():
        return "Email is required"
    if not EMAIL_PATTERN.search(email):
        return "Email is invalid"
    return None


def validate_password(password: str) -> Optional[str]:
    if not password:
        return "Password is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None


def validate_otp(otp: str) -> Optional[str]:
    if not otp or len(otp) != OTP_LENGTH or not otp.isdigit():
        return f"Please enter a valid {OTP_LENGTH}-digit OTP code"
    return None


def _collect(**checks: Optional[str]) -> Dict[str, str]:
    return {field: message for field, message in checks.items() if message}


def validate_sign_in(email: str, password: str) -> Dict[str, str]:
    return _collect(email=validate_email(email), password=validate_password(password))


def validate_sign_up(email: str, password: str, name: str) -> Dict[str, str]:
    return _collect(
        name=None if name and name.strip() else "Name is required",
        email=validate_email(email),
        password=validate_password(password)
    )


def validate_forgot_password(email: str) -> Dict[str, str]:
    return _collect(email=validate_email(email))


def validate_password_reset(email: str, otp: str, password: str, confirm_password: str) -> Dict[str, str]:
    return _collect(
        email=validate_email(email),
        otp=validate_otp(otp),
        password=validate_password(password),
        confirm_password=None if password == confirm_password else "Passwords do not match"
    )


def ensure_valid(errors: Dict[str, str]) -> None:
    """Raise FormValidationError if any field failed"""
    if errors:
        raise FormValidationError(errors)
