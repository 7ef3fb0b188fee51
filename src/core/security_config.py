"""Redaction rules for structured logs.

Keys listed here are masked by `core.error_handler.StructuredLogger` before a
log record is emitted, so cached secrets and host tokens never reach log sinks.
"""

SENSITIVE_KEYS: set[str] = {
    # Vision service and host API secrets
    "api_key",
    "service_key",
    "publish_token",
    "figma_token",
    "gemini_api_key",
    "token",
    "secret",
    "password",
    "authorization",
    "bearer",
    # Headers that may carry the secrets above
    "x-goog-api-key",
    "x-figma-token",
    "cookie",
    "set-cookie",
    # Raw payloads can be large and may embed user content
    "image_bytes",
    "inline_data",
}


def is_sensitive_key(key: str) -> bool:
    """Check if a key should be considered sensitive and redacted.

    Args:
        key: The key name to check

    Returns:
        True if the key should be redacted, False otherwise
    """
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)
