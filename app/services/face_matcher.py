"""
Face verification — compares a check-in selfie with the user's registered
reference photo.

Both images are fetched and turned into feature vectors by an external image
embedding model; the confidence is their cosine similarity. Verification is
best-effort: any fetch or model failure yields an unverified, zero-confidence
result carrying the error message instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import httpx
import numpy as np

from app.core.config import Settings

logger = logging.getLogger(__name__)

VERIFY_THRESHOLD = 0.75


@dataclass(frozen=True)
class FaceMatchResult:
    verified: bool
    confidence: float
    error: str | None = None


class ImageEmbedder(Protocol):
    async def fetch_bytes(self, url: str) -> bytes: ...

    async def embed(self, image: bytes) -> Sequence[float]: ...


class HttpImageEmbedder:
    """Fetches images over HTTP and embeds them via a hosted model endpoint.

    The endpoint receives the raw image bytes and must answer with either a
    JSON array of floats or an object holding one under ``embedding``,
    ``data`` or ``result``.
    """

    def __init__(
        self,
        api_url: str | None,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = httpx.Timeout(timeout_seconds)
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpImageEmbedder":
        return cls(
            settings.EMBEDDING_API_URL,
            settings.EMBEDDING_API_KEY,
            settings.FACE_HTTP_TIMEOUT_SECONDS,
        )

    async def fetch_bytes(self, url: str) -> bytes:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport, follow_redirects=True
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content

    async def embed(self, image: bytes) -> Sequence[float]:
        if not self.api_url:
            raise RuntimeError("Image embedding endpoint is not configured")

        headers = {"Content-Type": "application/octet-stream"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.api_url, content=image, headers=headers)
            response.raise_for_status()
            payload = response.json()

        if isinstance(payload, dict):
            for key in ("embedding", "data", "result"):
                if key in payload:
                    payload = payload[key]
                    break
        # Batch-style answers wrap a single vector in another list
        if isinstance(payload, list) and payload and isinstance(payload[0], list):
            payload = payload[0]
        if not isinstance(payload, list):
            raise ValueError("Embedding response did not contain a vector")
        return [float(x) for x in payload]


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for empty, mismatched or zero-norm vectors."""
    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)
    if a.size == 0 or a.shape != b.shape:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


class FaceMatcher:
    def __init__(self, embedder: ImageEmbedder, threshold: float = VERIFY_THRESHOLD) -> None:
        self.embedder = embedder
        self.threshold = threshold

    def score(self, reference: Sequence[float], candidate: Sequence[float]) -> FaceMatchResult:
        similarity = cosine_similarity(reference, candidate)
        # Opposed vectors mean "no match", not a negative confidence
        confidence = min(1.0, max(0.0, similarity))
        return FaceMatchResult(verified=confidence >= self.threshold, confidence=confidence)

    async def compare(
        self, reference_url: str | None, candidate_url: str | None
    ) -> FaceMatchResult:
        if not reference_url or not candidate_url:
            return FaceMatchResult(verified=False, confidence=0.0)

        try:
            ref_image, check_image = await asyncio.gather(
                self.embedder.fetch_bytes(reference_url),
                self.embedder.fetch_bytes(candidate_url),
            )
            ref_vec, check_vec = await asyncio.gather(
                self.embedder.embed(ref_image),
                self.embedder.embed(check_image),
            )
            return self.score(ref_vec, check_vec)
        except Exception as e:
            logger.warning("Face verification failed: %s", e)
            return FaceMatchResult(verified=False, confidence=0.0, error=str(e) or type(e).__name__)
