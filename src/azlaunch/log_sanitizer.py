"""Log sanitization for provisioning output.

Azure SDK errors echo request URLs, correlation headers and occasionally bearer
tokens. Everything that reaches the console or the log passes through here first.

Redacted:
- Bearer tokens and access token assignments
- PEM private key blocks
- Subscription GUIDs (partially masked, first 8 characters kept)
"""

import re
from re import Pattern


class LogSanitizer:
    """Sanitize sensitive data from logs and error messages.

    All methods are class methods and can be called without instantiation.
    """

    REDACTED = "[REDACTED]"
    MASKED = "****"

    # Order matters: more specific patterns come first
    SECRET_PATTERNS: dict[str, Pattern] = {
        "private_key_block": re.compile(
            r"(-----BEGIN [A-Z ]*PRIVATE KEY-----)[\s\S]*?(-----END [A-Z ]*PRIVATE KEY-----)"
        ),
        "authorization_bearer": re.compile(r"(Authorization:\s*Bearer\s+)([^\s]+)", re.IGNORECASE),
        "bearer": re.compile(r"(Bearer\s+)([A-Za-z0-9\-_\.=]{20,})"),
        "access_token": re.compile(
            r'(access[_-]?token["\']?\s*[:=]\s*["\']?)([^\s"\'&,\)]+)',
            re.IGNORECASE,
        ),
        "client_secret": re.compile(
            r'(client[_-]?secret["\']?\s*[:=]\s*["\']?)([^\s"\'&,\)]+)',
            re.IGNORECASE,
        ),
        "password": re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^\s"\'&,\)]+)', re.IGNORECASE),
    }

    UUID_PATTERN: Pattern = re.compile(
        r"\b([0-9a-f]{8})-([0-9a-f]{4})-([0-9a-f]{4})-([0-9a-f]{4})-([0-9a-f]{12})\b",
        re.IGNORECASE,
    )

    @classmethod
    def sanitize(cls, message: str) -> str:
        """Redact secrets and mask subscription GUIDs.

        Examples:
            >>> LogSanitizer.sanitize("access_token=abc123")
            'access_token=[REDACTED]'
        """
        if not isinstance(message, str):
            message = str(message)

        result = message
        for pattern_name, pattern in cls.SECRET_PATTERNS.items():
            if pattern_name == "private_key_block":
                result = pattern.sub(r"\1 " + cls.REDACTED + r" \2", result)
            else:
                result = pattern.sub(r"\1" + cls.REDACTED, result)

        return cls.mask_subscription_ids(result)

    @classmethod
    def mask_subscription_ids(cls, message: str) -> str:
        """Partially mask GUIDs, keeping the first 8 characters.

        Examples:
            >>> LogSanitizer.mask_subscription_ids("/subscriptions/12345678-1234-1234-1234-123456789abc")
            '/subscriptions/12345678-****-****-****-************'
        """

        def uuid_replacer(match):
            return f"{match.group(1)}-****-****-****-************"

        return cls.UUID_PATTERN.sub(uuid_replacer, message)

    @classmethod
    def create_safe_error_message(cls, error: Exception, context: str = "") -> str:
        """Create an error message with secrets sanitized.

        Examples:
            >>> err = ValueError("Auth failed with access_token=abc123")
            >>> LogSanitizer.create_safe_error_message(err, "Authentication")
            'Authentication: Auth failed with access_token=[REDACTED]'
        """
        sanitized_msg = cls.sanitize(str(error))

        if context:
            return f"{context}: {sanitized_msg}"
        return sanitized_msg

    @classmethod
    def sanitize_exception(cls, exc: Exception) -> str:
        """Sanitize exception message."""
        return cls.sanitize(str(exc))


__all__ = ["LogSanitizer"]
