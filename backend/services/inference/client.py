"""Inference capability used by the entity and sentiment analyzers.

Two interchangeable backends:

* ``RemoteInferenceClient`` POSTs the text to the Hugging Face inference API.
* ``LocalInferenceClient`` runs the same models through local transformers
  pipelines in a worker thread.

Both raise TransientError on timeouts, transport errors and responses that do
not look like model output, so callers can fall back instead of crashing.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from services.errors import TransientError
from services.inference import model_registry

logger = logging.getLogger(__name__)


class InferenceClient(ABC):
    """Text in, model predictions out."""

    @abstractmethod
    async def classify(self, text: str) -> list[dict]:
        """Return ``[{label, score}, ...]`` for a text classification model."""

    @abstractmethod
    async def tag_entities(self, text: str) -> list[dict]:
        """Return ``[{word, entity|entity_group, score}, ...]`` token tags."""

    async def aclose(self) -> None:
        return None


def _flatten_classification(data: Any) -> list[dict]:
    # text-classification returns [[{label, score}, ...]] for a single input
    if isinstance(data, list) and data and isinstance(data[0], list):
        data = data[0]
    if not isinstance(data, list):
        raise TransientError(f"Malformed classification response: {type(data).__name__}")
    results = [r for r in data if isinstance(r, dict) and "label" in r and "score" in r]
    if data and not results:
        raise TransientError("Classification response has no {label, score} items")
    return sorted(results, key=lambda r: r["score"], reverse=True)


def _validate_tags(data: Any) -> list[dict]:
    if not isinstance(data, list):
        raise TransientError(f"Malformed NER response: {type(data).__name__}")
    return [t for t in data if isinstance(t, dict)]


class RemoteInferenceClient(InferenceClient):
    def __init__(
        self,
        base_url: str,
        ner_model: str,
        sentiment_model: str,
        api_key: str = "",
        ner_timeout: float = 15.0,
        sentiment_timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._ner_model = ner_model
        self._sentiment_model = sentiment_model
        self._ner_timeout = ner_timeout
        self._sentiment_timeout = sentiment_timeout
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._headers = headers
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    async def _post(self, model: str, text: str, timeout: float) -> Any:
        url = f"{self._base_url}/{model}"
        try:
            response = await self._client.post(
                url, json={"inputs": text}, headers=self._headers, timeout=timeout
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise TransientError(f"Inference request to {model} failed: {e}") from e
        except ValueError as e:
            raise TransientError(f"Inference response from {model} is not JSON") from e
        if isinstance(data, dict) and "error" in data:
            raise TransientError(f"Inference service error: {data['error']}")
        return data

    async def classify(self, text: str) -> list[dict]:
        data = await self._post(self._sentiment_model, text, self._sentiment_timeout)
        return _flatten_classification(data)

    async def tag_entities(self, text: str) -> list[dict]:
        data = await self._post(self._ner_model, text, self._ner_timeout)
        return _validate_tags(data)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class LocalInferenceClient(InferenceClient):
    def __init__(
        self,
        ner_model: str,
        sentiment_model: str,
        ner_timeout: float = 15.0,
        sentiment_timeout: float = 10.0,
    ) -> None:
        self._ner_model = ner_model
        self._sentiment_model = sentiment_model
        self._ner_timeout = ner_timeout
        self._sentiment_timeout = sentiment_timeout

    async def _run(self, task: str, model: str, text: str, timeout: float) -> Any:
        def _predict() -> Any:
            return model_registry.get_pipeline(task, model)(text)

        try:
            return await asyncio.wait_for(asyncio.to_thread(_predict), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise TransientError(f"Local {task} inference timed out after {timeout}s") from e
        except Exception as e:
            raise TransientError(f"Local {task} inference failed: {e}") from e

    async def classify(self, text: str) -> list[dict]:
        data = await self._run("text-classification", self._sentiment_model, text, self._sentiment_timeout)
        return _flatten_classification(data)

    async def tag_entities(self, text: str) -> list[dict]:
        data = await self._run("token-classification", self._ner_model, text, self._ner_timeout)
        # Local pipelines return numpy floats; normalize to plain JSON types
        return [
            {**tag, "score": float(tag.get("score", 0.0))} for tag in _validate_tags(data)
        ]
