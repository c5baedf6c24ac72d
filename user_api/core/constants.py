"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000

# Security and redaction
REDACTED = "[REDACTED]"

# HTTP
CORRELATION_ID_HEADER = "X-Correlation-ID"
JSON_CONTENT_TYPE = "application/json"
