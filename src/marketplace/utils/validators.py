import re
from typing import Optional

from email_validator import EmailNotValidError, validate_email


class ValidationUtils:
    """
    Validation and normalisation helpers for user-supplied text
    """

    MIN_PASSWORD_LENGTH = 8
    MAX_PASSWORD_LENGTH = 128

    @classmethod
    def normalize_email(cls, email: str) -> str:
        """
        Normalize email address for consistent storage

        Raises:
            ValueError: When the address is not syntactically valid
        """
        try:
            validated = validate_email(email.strip(), check_deliverability=False)
            return validated.normalized.lower()
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email address: {email} ({e})")

    @classmethod
    def validate_password(cls, password: str) -> bool:
        return cls.MIN_PASSWORD_LENGTH <= len(password) <= cls.MAX_PASSWORD_LENGTH

    @classmethod
    def sanitize_text(cls, text: Optional[str], max_length: Optional[int] = None) -> Optional[str]:
        """
        Sanitize text input for safe storage and display

        - Strips whitespace
        - Removes control characters except newlines and tabs
        - Enforces length limits
        """
        if text is None:
            return None

        sanitized = text.strip()
        sanitized = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", sanitized)

        if max_length:
            sanitized = sanitized[:max_length]

        return sanitized
