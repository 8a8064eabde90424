"""
Tests for Gemini Client adapter.
"""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock, PropertyMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from poprocessor.config.errors import (
    ErrorCode,
    NonTransientCallError,
    QuotaExhaustedError,
    TransientCallError,
)
from poprocessor.config.settings import Settings
from poprocessor.domains.extraction import SourceDocument
from poprocessor.domains.orchestration import GenerationClient

from .client import GeminiClient, classify_error, detect_rate_limit_type
from .models import GeminiConfig, GeminiResponse, InlineDocument


@pytest.fixture
def mock_genai() -> Generator[MagicMock, None, None]:
    """Mock the google.generativeai module."""
    with patch("poprocessor.adapters.gemini.client.genai") as mock:
        mock_model = MagicMock()
        mock_model.generate_content.return_value = MagicMock(
            text="Test response",
            usage_metadata=MagicMock(
                prompt_token_count=10,
                candidates_token_count=20,
            ),
        )
        mock.GenerativeModel.return_value = mock_model
        yield mock


@pytest.fixture
def client(mock_genai: MagicMock) -> GeminiClient:
    """Create a GeminiClient with mocked dependencies."""
    return GeminiClient()


# --- Model Tests ---


def test_gemini_config_defaults() -> None:
    """Test GeminiConfig default values."""
    config = GeminiConfig()
    assert config.model == "gemini-2.0-flash"
    assert config.temperature == 0.1
    assert config.max_output_tokens == 8192
    assert config.timeout_seconds == 120.0


def test_gemini_config_from_settings() -> None:
    """Test GeminiConfig is built from settings."""
    settings = Settings(gemini_model="gemini-2.5-flash", gemini_api_key="s3cr3t", governor_call_timeout_seconds=30)
    config = GeminiConfig.from_settings(settings)
    assert config.model == "gemini-2.5-flash"
    assert config.api_key == "s3cr3t"
    assert config.timeout_seconds == 30
    assert "s3cr3t" not in repr(config)


def test_gemini_config_temperature_validation() -> None:
    """Test GeminiConfig temperature must be between 0 and 2."""
    with pytest.raises(ValueError):
        GeminiConfig(temperature=-0.1)
    with pytest.raises(ValueError):
        GeminiConfig(temperature=2.1)


def test_source_document_is_inline_document() -> None:
    """Test source documents can be attached directly."""
    assert isinstance(SourceDocument(data=b"%PDF"), InlineDocument)


# --- Client Initialization Tests ---


def test_client_uses_adc_without_key(mock_genai: MagicMock) -> None:
    """Test no key is configured when none is set."""
    GeminiClient()
    mock_genai.configure.assert_not_called()


def test_client_configures_api_key(mock_genai: MagicMock) -> None:
    """Test the API key is passed to the SDK."""
    GeminiClient(GeminiConfig(api_key="secret"))
    mock_genai.configure.assert_called_once_with(api_key="secret")


def test_client_satisfies_generation_contract(client: GeminiClient) -> None:
    """Test the client implements the pipeline contract."""
    assert isinstance(client, GenerationClient)


# --- Generate Tests ---


async def test_generate_basic(client: GeminiClient, mock_genai: MagicMock) -> None:
    """Test basic text generation and usage accounting."""
    response = await client.generate("Hello")

    assert isinstance(response, GeminiResponse)
    assert response.text == "Test response"
    assert response.prompt_tokens == 10
    assert response.completion_tokens == 20
    assert response.total_tokens == 30

    mock_genai.GenerativeModel.assert_called_once_with(
        model_name="gemini-2.0-flash",
        generation_config={"temperature": 0.1, "max_output_tokens": 8192},
    )


async def test_generate_json_mode_and_timeout(client: GeminiClient, mock_genai: MagicMock) -> None:
    """Test the response mime type and timeout reach the SDK."""
    await client.generate("Return JSON", response_mime_type="application/json")

    kwargs = mock_genai.GenerativeModel.return_value.generate_content.call_args.kwargs
    assert kwargs["generation_config"] == {"response_mime_type": "application/json"}
    assert kwargs["request_options"] == {"timeout": 120.0}


async def test_generate_with_system_instruction(client: GeminiClient, mock_genai: MagicMock) -> None:
    """Test the system instruction is sent as leading turns."""
    await client.generate("Hello", system_instruction="Return JSON only.")

    contents = mock_genai.GenerativeModel.return_value.generate_content.call_args.args[0]
    assert contents[0] == {"role": "user", "parts": ["Return JSON only."]}
    assert contents[1]["role"] == "model"
    assert contents[-1] == {"role": "user", "parts": ["Hello"]}


async def test_generate_with_inline_document(client: GeminiClient, mock_genai: MagicMock) -> None:
    """Test document bytes are attached as an inline part."""
    document = SourceDocument(data=b"%PDF-1.4", filename="po.pdf")

    await client.generate("Extract", document=document)

    contents = mock_genai.GenerativeModel.return_value.generate_content.call_args.args[0]
    assert contents[-1]["parts"] == ["Extract", {"mime_type": "application/pdf", "data": b"%PDF-1.4"}]


async def test_generate_without_usage(client: GeminiClient, mock_genai: MagicMock) -> None:
    """Test responses without usage metadata count zero tokens."""
    mock_genai.GenerativeModel.return_value.generate_content.return_value = MagicMock(
        text="{}", usage_metadata=None
    )

    response = await client.generate("Hello")

    assert response.total_tokens == 0


# --- Error Handling Tests ---


async def test_generate_rate_limit_is_transient(client: GeminiClient, mock_genai: MagicMock) -> None:
    """Test rate limits surface as transient errors."""
    mock_genai.GenerativeModel.return_value.generate_content.side_effect = Exception(
        "429 Rate limit exceeded for requests per minute, retry in 12s"
    )

    with pytest.raises(TransientCallError) as exc_info:
        await client.generate("Hello")

    assert exc_info.value.code == ErrorCode.LLM_RATE_LIMITED
    assert exc_info.value.retry_after == 12.0
    assert exc_info.value.details["limit"] == "RPM"


async def test_generate_auth_failure(client: GeminiClient, mock_genai: MagicMock) -> None:
    """Test credential failures are not transient."""
    mock_genai.GenerativeModel.return_value.generate_content.side_effect = (
        google_exceptions.PermissionDenied("API key not valid")
    )

    with pytest.raises(NonTransientCallError) as exc_info:
        await client.generate("Hello")

    assert exc_info.value.code == ErrorCode.LLM_AUTH_FAILED


async def test_blocked_response_is_invalid_request(client: GeminiClient, mock_genai: MagicMock) -> None:
    """Test a response without text is classified, not leaked."""
    response = MagicMock()
    type(response).text = PropertyMock(side_effect=ValueError("no candidates"))
    mock_genai.GenerativeModel.return_value.generate_content.return_value = response

    with pytest.raises(NonTransientCallError) as exc_info:
        await client.generate("Hello")

    assert exc_info.value.code == ErrorCode.LLM_INVALID_REQUEST


async def test_connection_check(client: GeminiClient, mock_genai: MagicMock) -> None:
    """Test the connection check reports failures as False."""
    assert await client.test_connection()

    mock_genai.GenerativeModel.return_value.generate_content.side_effect = ConnectionError("refused")
    assert not await client.test_connection()


# --- Classification Tests ---


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("Quota exceeded for requests per day", "RPD"),
        ("GenerateRequestsPerDayPerProjectPerModel", "RPD"),
        ("Input token count per minute exceeded", "TPM"),
        ("Too many requests per minute", "RPM"),
        ("Resource has been exhausted", "unknown"),
    ],
)
def test_detect_rate_limit_type(message: str, expected: str) -> None:
    """Test limit detection from error messages."""
    assert detect_rate_limit_type(message) == expected


def test_classify_daily_quota() -> None:
    """Test daily quota exhaustion is its own category."""
    error = classify_error(google_exceptions.ResourceExhausted("Quota exceeded: requests per day"))
    assert isinstance(error, QuotaExhaustedError)
    assert error.code == ErrorCode.LLM_QUOTA_EXHAUSTED


def test_classify_resource_exhausted_per_minute() -> None:
    """Test per-minute exhaustion is a retryable rate limit."""
    error = classify_error(google_exceptions.ResourceExhausted("Resource has been exhausted"))
    assert isinstance(error, TransientCallError)
    assert error.code == ErrorCode.LLM_RATE_LIMITED


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (google_exceptions.DeadlineExceeded("Deadline"), ErrorCode.LLM_TIMEOUT),
        (TimeoutError(), ErrorCode.LLM_TIMEOUT),
        (google_exceptions.ServiceUnavailable("backend down"), ErrorCode.LLM_UNAVAILABLE),
        (google_exceptions.InternalServerError("oops"), ErrorCode.LLM_UNAVAILABLE),
        (ConnectionError("reset by peer"), ErrorCode.LLM_UNAVAILABLE),
        (OSError("network is unreachable"), ErrorCode.LLM_UNAVAILABLE),
    ],
)
def test_classify_transient(exc: Exception, code: ErrorCode) -> None:
    """Test timeouts, network errors and 5xx are transient."""
    error = classify_error(exc)
    assert isinstance(error, TransientCallError)
    assert error.code == code


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (google_exceptions.Unauthenticated("bad credentials"), ErrorCode.LLM_AUTH_FAILED),
        (Exception("403 Forbidden"), ErrorCode.LLM_AUTH_FAILED),
        (google_exceptions.InvalidArgument("Request payload size exceeds the limit"), ErrorCode.LLM_INVALID_REQUEST),
        (ValueError("unexpected"), ErrorCode.LLM_INVALID_REQUEST),
    ],
)
def test_classify_non_transient(exc: Exception, code: ErrorCode) -> None:
    """Test authorization and malformed requests are never retried."""
    error = classify_error(exc)
    assert isinstance(error, NonTransientCallError)
    assert not isinstance(error, QuotaExhaustedError)
    assert error.code == code


@pytest.mark.parametrize(
    "message",
    [
        "max_output_tokens 1500 exceeds limit",
        "Request 4035 has an invalid field",
    ],
)
def test_classify_status_digits_inside_numbers(message: str) -> None:
    """Test status codes only count as whole numbers."""
    error = classify_error(ValueError(message))
    assert isinstance(error, NonTransientCallError)
    assert error.code == ErrorCode.LLM_INVALID_REQUEST


def test_classify_server_status_word() -> None:
    """Test a bare 503 in the message is transient."""
    error = classify_error(RuntimeError("HTTP 503 from upstream"))
    assert isinstance(error, TransientCallError)
    assert error.code == ErrorCode.LLM_UNAVAILABLE


def test_classify_passes_through_call_errors() -> None:
    """Test taxonomy errors are returned unchanged."""
    original = TransientCallError("down")
    assert classify_error(original) is original
