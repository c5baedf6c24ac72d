"""Cross-cutting functionality shared by every layer.

- **config**: Centralized configuration management with environment support
- **context**: Request context and correlation ID management
- **exceptions**: Structured exception hierarchy with error codes
- **error_context**: Sensitive data sanitization for safe logging
- **logging**: Structured logging for Lambda and local development
- **observability**: Distributed tracing with OpenTelemetry
- **types**: Type aliases for gateway events and loosely typed data
"""
