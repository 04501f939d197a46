"""
HTTP Embedder

Calls an OpenAI-compatible `/embeddings` endpoint over aiohttp with the
same retry, rate-limit backoff and structured logging the rest of the
service uses for outbound HTTP.
"""

import asyncio
import json
import random
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from ..errors import EmbeddingError
from .base import Embedder

logger = structlog.get_logger(__name__)


class HttpEmbedder(Embedder):
    """
    Embedder backed by a remote embeddings API.

    Use as an async context manager so the aiohttp session is opened and
    closed around a batch of work:

        async with HttpEmbedder(base_url, api_key) as embedder:
            vector = await embedder.embed_single("rainy day")
    """

    provider = "http"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        model: str = "text-embedding-3-small",
        dimensions: int = 384,
        batch_size: int = 100,
        timeout: int = 10,
        retries: int = 3,
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.model = model
        self.dimensions = dimensions
        self.batch_size = max(1, batch_size)
        self.timeout = timeout
        self.retries = retries
        self.session: Optional[aiohttp.ClientSession] = None

        self.logger = logger.bind(
            service=self.provider,
            component="HttpEmbedder",
            model=model,
        )
        self.logger.debug("HTTP embedder initialized", timeout=timeout, dimensions=dimensions)

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("Embedder session closed")

    def get_model(self) -> str:
        return self.model

    def get_dimensions(self) -> int:
        return self.dimensions

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        vectors: List[List[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start:start + self.batch_size]
            data = await self._request({
                "model": self.model,
                "input": batch,
                "dimensions": self.dimensions,
            })
            vectors.extend(self._parse_embeddings(data, len(batch)))

            usage = data.get("usage") or {}
            self.logger.debug(
                "Generated embeddings",
                texts=len(batch),
                tokens=usage.get("total_tokens"),
            )

        return vectors

    async def is_available(self) -> bool:
        try:
            await self.embed(["test"])
            return True
        except EmbeddingError as e:
            self.logger.warning("Embedder availability check failed", error=str(e))
            return False

    def _parse_embeddings(self, data: Dict[str, Any], expected: int) -> List[List[float]]:
        items = data.get("data")
        if not isinstance(items, list) or len(items) != expected:
            raise EmbeddingError(
                f"Malformed embeddings response: expected {expected} items",
                provider=self.provider,
            )
        # Responses carry an index; order by it rather than trusting list order
        items = sorted(items, key=lambda item: item.get("index", 0))
        return [list(map(float, item["embedding"])) for item in items]

    async def _request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST to `/embeddings` with retries.

        Raises:
            EmbeddingError: For unrecoverable or exhausted failures
        """
        if not self.session:
            self.logger.error("Client not initialized")
            raise EmbeddingError(
                "HTTP embedder not initialized. Use async context manager.",
                provider=self.provider,
            )

        url = f"{self.base_url}/embeddings"
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        for attempt in range(self.retries + 1):
            try:
                async with self.session.post(url, json=payload, headers=headers) as response:
                    if response.status == 200:
                        try:
                            return await response.json()
                        except (json.JSONDecodeError, aiohttp.ContentTypeError) as e:
                            raise EmbeddingError(
                                "Embeddings endpoint returned invalid JSON",
                                provider=self.provider,
                                cause=e,
                            )

                    if response.status == 429:
                        wait_time = self._retry_after(response, attempt)
                        self.logger.warning(
                            "Rate limited - backing off",
                            attempt=attempt + 1,
                            wait_time=wait_time,
                        )
                        await asyncio.sleep(wait_time)
                        continue

                    self.logger.warning(
                        "Embeddings HTTP error",
                        status=response.status,
                        attempt=attempt + 1,
                        max_attempts=self.retries + 1,
                    )
                    if 400 <= response.status < 500:
                        raise EmbeddingError(
                            f"Embeddings request rejected: {response.status}",
                            provider=self.provider,
                        )
                    if attempt == self.retries:
                        raise EmbeddingError(
                            f"Embeddings request failed after {self.retries + 1} attempts",
                            provider=self.provider,
                        )
                    await self._exponential_backoff(attempt)

            except asyncio.TimeoutError as e:
                self.logger.warning("Embeddings request timeout", attempt=attempt + 1, timeout=self.timeout)
                if attempt == self.retries:
                    raise EmbeddingError(
                        f"Embeddings request timed out after {self.retries + 1} attempts",
                        provider=self.provider,
                        cause=e,
                    )
                await self._exponential_backoff(attempt)

            except aiohttp.ClientError as e:
                self.logger.error(
                    "HTTP client error",
                    error=str(e),
                    error_type=type(e).__name__,
                    attempt=attempt + 1,
                )
                if attempt == self.retries:
                    raise EmbeddingError(
                        f"Embeddings client error: {e}",
                        provider=self.provider,
                        cause=e,
                    )
                await self._exponential_backoff(attempt)

        raise EmbeddingError(
            f"Embeddings request failed after {self.retries + 1} attempts",
            provider=self.provider,
        )

    @staticmethod
    def _retry_after(response: aiohttp.ClientResponse, attempt: int) -> float:
        retry_after = response.headers.get('Retry-After')
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass
        return min(2 ** attempt, 60)

    async def _exponential_backoff(self, attempt: int, base_delay: float = 1.0):
        delay = base_delay * (2 ** attempt) + random.uniform(0, 1)
        await asyncio.sleep(min(delay, 30))
