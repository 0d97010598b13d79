"""Property-based tests for error handling across the HTTP client and error service."""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest
from hypothesis import given, strategies as st, settings

from player_finder.services import HttpClientService
from player_finder.services.errors import (
    AppError,
    CollectionError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    NetworkError,
    StreamError,
    ValidationError,
)


class TestErrorHandlingProperties:
    """Property-based tests for user-friendly error handling."""

    @given(
        url=st.text(min_size=10, max_size=100).map(lambda x: f"https://example.com/{x.replace('/', '_')}"),
        error_type=st.sampled_from(["network_error", "timeout_error", "read_error"]),
        error_message=st.text(min_size=5, max_size=100),
    )
    @pytest.mark.asyncio
    @settings(deadline=None)  # HTTP client setup/teardown is slow
    async def test_http_client_wraps_transport_errors(
        self,
        url: str,
        error_type: str,
        error_message: str,
    ) -> None:
        """Transport failures surface as NetworkError with technical details logged."""
        client = HttpClientService(timeout=1.0)

        if error_type == "network_error":
            mock_error = httpx.ConnectError(error_message)
        elif error_type == "timeout_error":
            mock_error = httpx.ReadTimeout(error_message)
        else:
            mock_error = httpx.ReadError(error_message)

        with patch.object(client._client, 'get', side_effect=mock_error):
            with patch('player_finder.services.http_client.log') as mock_logger:
                with pytest.raises(NetworkError) as exc_info:
                    await client.get(url)

                assert exc_info.value.original_error is mock_error
                assert exc_info.value.url == url
                assert exc_info.value.category == ErrorCategory.NETWORK

                log_calls = mock_logger.warning.call_args_list + mock_logger.error.call_args_list
                assert len(log_calls) > 0
                assert any('error_type' in call.kwargs and 'url' in call.kwargs for call in log_calls)

        await client.close()

    @given(status_code=st.sampled_from([200, 202, 404, 429, 500, 503]))
    @settings(deadline=None)
    def test_http_client_returns_any_status(self, status_code: int) -> None:
        """Status codes are left to the caller; only transport failures raise."""
        async def run_test() -> None:
            transport = httpx.MockTransport(lambda request: httpx.Response(status_code, text="body"))
            async with HttpClientService(transport=transport) as client:
                response = await client.get("https://example.com/collection")
            assert response.status_code == status_code
            assert response.text == "body"

        asyncio.run(run_test())

    @given(
        message=st.text(min_size=1, max_size=80),
        username=st.text(min_size=1, max_size=20),
        attempts=st.integers(min_value=1, max_value=10),
    )
    def test_collection_error_keeps_message_verbatim(self, message: str, username: str, attempts: int) -> None:
        error = CollectionError(message, username=username, attempts=attempts)
        user_error = error.to_user_friendly()

        assert user_error.message == message
        assert user_error.category == ErrorCategory.COLLECTION
        assert user_error.severity == ErrorSeverity.ERROR
        assert f"Attempts: {attempts}" in (user_error.technical_details or "")

    def test_stream_error_is_a_warning(self) -> None:
        error = StreamError(url="https://example.com/stream", status_code=500, records_dispatched=3)
        user_error = error.to_user_friendly()

        assert user_error.message == "failed to fetch enrichment data"
        assert user_error.category == ErrorCategory.ENRICHMENT
        assert user_error.severity == ErrorSeverity.WARNING
        assert "Records applied: 3" in (user_error.technical_details or "")


class TestErrorConversion:
    """Standard exceptions map onto user-facing categories."""

    def test_connect_error_becomes_network_error(self) -> None:
        service = ErrorHandlingService()
        user_error = service.handle_error(httpx.ConnectError("refused"), "fetch", "test")
        assert user_error.category == ErrorCategory.NETWORK
        assert "connect" in user_error.message.lower()

    def test_timeout_becomes_network_error(self) -> None:
        service = ErrorHandlingService()
        user_error = service.handle_error(httpx.ReadTimeout("slow"), "fetch", "test")
        assert user_error.category == ErrorCategory.NETWORK
        assert "timed out" in user_error.message

    @pytest.mark.parametrize(
        "status_code, first_action",
        [
            (429, "BoardGameGeek is rate limiting requests"),
            (503, "The server is having trouble"),
            (404, "Check the BoardGameGeek username"),
            (None, "Check the BoardGameGeek username"),
        ],
    )
    def test_collection_error_actions_follow_status(self, status_code: int | None, first_action: str) -> None:
        error = CollectionError("catalog request failed", username="alice", status_code=status_code)
        assert error.suggested_actions[0] == first_action

    def test_stream_error_actions_follow_status(self) -> None:
        assert StreamError(status_code=429).suggested_actions[0] == "BoardGameGeek is rate limiting requests"
        assert StreamError().suggested_actions[0] == "Player-count statistics may be incomplete"

    def test_value_error_becomes_validation_error(self) -> None:
        user_error = ErrorHandlingService().handle_error(ValueError("min_players must not exceed max_players"), "filter", "test")
        assert user_error.category == ErrorCategory.VALIDATION
        assert user_error.message == "min_players must not exceed max_players"

    def test_json_error_becomes_validation_error(self) -> None:
        try:
            json.loads("{broken")
        except json.JSONDecodeError as e:
            user_error = ErrorHandlingService().handle_error(e, "decode", "test")

        assert user_error.category == ErrorCategory.VALIDATION
        assert "JSON" in user_error.message

    def test_app_errors_pass_through(self) -> None:
        original = ValidationError("bad field", field="username")
        user_error = ErrorHandlingService().handle_error(original, "validate", "test")
        assert user_error.message == "bad field"
        assert "Field: username" in (user_error.technical_details or "")

    def test_unknown_errors_are_unexpected(self) -> None:
        user_error = ErrorHandlingService().handle_error(RuntimeError("boom"), "run", "test")
        assert user_error.category == ErrorCategory.UNEXPECTED
        assert "RuntimeError: boom" in (user_error.technical_details or "")

    def test_user_message_lists_at_most_three_suggestions(self) -> None:
        service = ErrorHandlingService()
        error = AppError("Something failed", suggested_actions=["one", "two", "three", "four"])

        message = service.create_user_message(error.to_user_friendly())

        assert message.startswith("Something failed")
        assert "  • three" in message
        assert "four" not in message
        assert service.create_user_message(error.to_user_friendly(), include_suggestions=False) == "Something failed"


class TestErrorRecoveryStateConsistency:
    """The error service keeps a consistent history across many errors."""

    @given(
        errors=st.lists(
            st.sampled_from([
                ValueError("Test validation error"),
                TypeError("Test type error"),
                httpx.ConnectError("Test connect error"),
                RuntimeError("Test runtime error"),
                CollectionError("Invalid username specified"),
                StreamError(),
            ]),
            min_size=1,
            max_size=20,
        )
    )
    @settings(deadline=None, max_examples=50)
    def test_error_handling_service_state_consistency(self, errors: list[Exception]) -> None:
        error_service = ErrorHandlingService(max_history_size=10)

        for error in errors:
            user_error = error_service.handle_error(
                error=error,
                operation="test_operation",
                component="test_component",
                context={"test_key": "test_value"},
            )
            assert user_error.message, "Error should have a message"
            assert user_error.category in ErrorCategory
            assert user_error.recoverable is True

        expected_history = min(len(errors), 10)
        assert len(error_service.get_recent_errors(count=100)) == expected_history

        counts = error_service.get_error_count_by_category()
        assert sum(counts.values()) == expected_history

        new_user_error = error_service.handle_error(RuntimeError("after recovery"), "new_operation", "new_component")
        assert new_user_error.message
        assert error_service.get_recent_errors(count=1)[0].technical_details == "RuntimeError: after recovery"
