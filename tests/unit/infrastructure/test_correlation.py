"""Unit tests for correlation id management."""

import re

from src.infrastructure.observability.correlation import (
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
)


class TestCorrelationIdContext:
    def test_generated_ids_are_unique_uuid4(self) -> None:
        ids = [generate_correlation_id() for _ in range(50)]

        assert len(set(ids)) == 50
        assert all(UUID_PATTERN.match(value) for value in ids)

    def test_set_and_reset(self) -> None:
        token = set_correlation_id("req-123")
        try:
            assert get_correlation_id() == "req-123"
        finally:
            reset_correlation_id(token)

        assert get_correlation_id() != "req-123"

    def test_blank_id_is_replaced(self) -> None:
        token = set_correlation_id("   ")
        try:
            assert UUID_PATTERN.match(get_correlation_id())
        finally:
            reset_correlation_id(token)


class TestCorrelationIdProcessor:
    def test_adds_bound_id(self) -> None:
        token = set_correlation_id("req-456")
        try:
            event = correlation_id_processor(None, "info", {"event": "x"})
        finally:
            reset_correlation_id(token)

        assert event == {"event": "x", "correlation_id": "req-456"}

    def test_leaves_event_alone_outside_request(self) -> None:
        assert correlation_id_processor(None, "info", {"event": "x"}) == {"event": "x"}
