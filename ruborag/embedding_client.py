"""Embedding gateway: text in, fixed-length float32 vector out.

Wraps a remote embedding endpoint behind one synchronous call and maps every
transport, auth and model failure onto the gateway error taxonomy. No
retries are performed here.
"""
from typing import List, Optional
import httpx
import numpy as np
from pydantic import BaseModel, ValidationError
import structlog

from ruborag import config
from ruborag.errors import (
    ConfigurationError,
    EmbeddingUnavailable,
    EmptyInput,
    InvalidArgument,
    ModelError,
)

logger = structlog.get_logger()

# Statuses that mean "service not usable right now", not "bad input"
_UNAVAILABLE_STATUSES = {401, 403, 408, 429}


class GeminiContentEmbedding(BaseModel):
    """Embedding payload returned by Gemini."""
    values: List[float]


class GeminiEmbedResponse(BaseModel):
    """Response body of the Gemini ``embedContent`` endpoint."""
    embedding: GeminiContentEmbedding


class OllamaEmbedResponse(BaseModel):
    """Response body of the Ollama ``/api/embeddings`` endpoint."""
    embedding: List[float]


class EmbeddingClient:
    """Base class for synchronous embedding clients.

    Subclasses implement :meth:`_post` (build and send the HTTP request) and
    :meth:`_parse` (extract the raw vector from the decoded JSON body).
    """

    provider = "base"

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Service base URL
            model: Embedding model identifier
            timeout: Request timeout in seconds (default from config)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = config.EMBEDDING_TIMEOUT if timeout is None else timeout
        self._transport = transport
        # Discovered from the first successful response
        self.dimension: Optional[int] = None

    def embed(self, text: str) -> np.ndarray:
        """Embed a single text.

        Args:
            text: Text to embed

        Returns:
            One-dimensional float32 array

        Raises:
            EmptyInput: If text is empty after trimming
            EmbeddingUnavailable: On transport, auth, rate-limit or server failure
            ModelError: If the model rejects the input or returns an unusable vector
        """
        if not text or not text.strip():
            raise EmptyInput("Cannot embed empty text")

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                logger.debug(
                    "embedding_request",
                    provider=self.provider,
                    model=self.model,
                    text_length=len(text),
                )
                response = self._post(client, text)
        except httpx.TimeoutException as e:
            logger.error("embedding_timeout", provider=self.provider, timeout=self.timeout)
            raise EmbeddingUnavailable(
                f"Embedding request timed out after {self.timeout}s"
            ) from e
        except httpx.TransportError as e:
            logger.error(
                "embedding_connection_error",
                provider=self.provider,
                base_url=self.base_url,
                error=str(e),
            )
            raise EmbeddingUnavailable(f"Embedding service unreachable: {e}") from e
        except httpx.HTTPError as e:
            logger.error(
                "embedding_request_failed",
                provider=self.provider,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise EmbeddingUnavailable(f"Embedding request failed: {e}") from e

        self._raise_for_status(response)

        try:
            values = self._parse(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("embedding_response_invalid", provider=self.provider, error=str(e))
            raise ModelError(f"Malformed embedding response: {e}") from e

        vector = np.asarray(values, dtype=np.float32)

        if vector.size == 0:
            raise ModelError("Empty embedding returned by model")

        if self.dimension is None:
            self.dimension = int(vector.size)
            logger.info(
                "embedding_dimension_detected",
                provider=self.provider,
                model=self.model,
                dimension=self.dimension,
            )
        elif vector.size != self.dimension:
            raise ModelError(
                f"Embedding dimension changed: expected {self.dimension}, got {vector.size}"
            )

        return vector

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return

        status = response.status_code
        detail = _error_detail(response)
        logger.error(
            "embedding_http_error",
            provider=self.provider,
            status_code=status,
            detail=detail,
        )

        if status in _UNAVAILABLE_STATUSES or status >= 500:
            raise EmbeddingUnavailable(f"Embedding service returned {status}: {detail}")
        raise ModelError(f"Model rejected input ({status}): {detail}")

    def _post(self, client: httpx.Client, text: str) -> httpx.Response:
        raise NotImplementedError

    def _parse(self, data) -> List[float]:
        raise NotImplementedError


class GeminiEmbeddingClient(EmbeddingClient):
    """Client for the Gemini ``embedContent`` API."""

    provider = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the Gemini client.

        Args:
            api_key: API key (defaults to config.GEMINI_API_KEY)
            model: Model name (defaults to config.EMBEDDING_MODEL)
            base_url: API base URL (defaults to config.GEMINI_BASE_URL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport

        Raises:
            ConfigurationError: If no API key is available
        """
        super().__init__(
            base_url=base_url or config.GEMINI_BASE_URL,
            model=model or config.EMBEDDING_MODEL,
            timeout=timeout,
            transport=transport,
        )
        self.api_key = api_key or config.GEMINI_API_KEY
        if not self.api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY is not set; export GEMINI_API_KEY=<your_key>"
            )

    def _post(self, client: httpx.Client, text: str) -> httpx.Response:
        return client.post(
            f"{self.base_url}/models/{self.model}:embedContent",
            headers={"x-goog-api-key": self.api_key},
            json={
                "model": f"models/{self.model}",
                "content": {"parts": [{"text": text}]},
            },
        )

    def _parse(self, data) -> List[float]:
        return GeminiEmbedResponse.model_validate(data).embedding.values


class OllamaEmbeddingClient(EmbeddingClient):
    """Client for a local Ollama server."""

    provider = "ollama"

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(
            base_url=base_url or config.OLLAMA_BASE_URL,
            model=model or config.OLLAMA_EMBEDDING_MODEL,
            timeout=timeout,
            transport=transport,
        )

    def _post(self, client: httpx.Client, text: str) -> httpx.Response:
        return client.post(
            f"{self.base_url}/api/embeddings",
            json={"model": self.model, "prompt": text},
        )

    def _parse(self, data) -> List[float]:
        return OllamaEmbedResponse.model_validate(data).embedding


def _error_detail(response: httpx.Response) -> str:
    """Best-effort extraction of an API error message."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            return str(error.get("message", error))
        if error:
            return str(error)
    return response.text[:200]


def get_embedding_client(provider: Optional[str] = None, **kwargs) -> EmbeddingClient:
    """Create the embedding client selected by configuration.

    Args:
        provider: "gemini" or "ollama" (defaults to config.EMBEDDING_PROVIDER)
        **kwargs: Passed through to the client constructor

    Returns:
        EmbeddingClient instance

    Raises:
        InvalidArgument: If the provider is unknown
        ConfigurationError: If the provider's credential is missing
    """
    provider = (provider or config.EMBEDDING_PROVIDER).lower()

    if provider == "gemini":
        return GeminiEmbeddingClient(**kwargs)
    if provider == "ollama":
        return OllamaEmbeddingClient(**kwargs)

    raise InvalidArgument(f"Unknown embedding provider: {provider!r}")
