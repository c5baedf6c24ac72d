"""Unit tests for request context management."""

import uuid

import pytest

from user_api.core.context import RequestContext, generate_correlation_id


@pytest.mark.unit
class TestRequestContext:
    def test_set_get_clear(self) -> None:
        assert RequestContext.get_correlation_id() is None

        RequestContext.set_correlation_id("abc")
        assert RequestContext.get_correlation_id() == "abc"

        RequestContext.clear()
        assert RequestContext.get_correlation_id() is None

    def test_generated_ids_are_uuid4(self) -> None:
        first = generate_correlation_id()

        assert uuid.UUID(first).version == 4
        assert first != generate_correlation_id()
