"""Request context management utilities for correlation IDs."""

import uuid
from contextvars import ContextVar

# Context variable for storing correlation ID for the current invocation
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class RequestContext:
    """Manages request context using contextvars.

    Handlers set the correlation ID at the start of every invocation so that
    logs, spans and error envelopes emitted further down the call chain can
    be tied back to the gateway request.
    """

    @staticmethod
    def set_correlation_id(correlation_id: str) -> None:
        """Set the correlation ID for the current context.

        Args:
            correlation_id: The correlation ID to store in the context.
        """
        _correlation_id_var.set(correlation_id)

    @staticmethod
    def get_correlation_id() -> str | None:
        """Get the correlation ID from the current context.

        Returns:
            str | None: The correlation ID if set, None otherwise.
        """
        return _correlation_id_var.get()

    @staticmethod
    def clear() -> None:
        """Clear all context variables.

        Warm serverless processes reuse module state, so this is called at
        the end of every invocation.
        """
        _correlation_id_var.set(None)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracking.

    Returns:
        str: A string representation of a UUID4.

    Examples:
        >>> correlation_id = generate_correlation_id()
        >>> len(correlation_id)
        36
    """
    return str(uuid.uuid4())
