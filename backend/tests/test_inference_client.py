import json
from unittest.mock import patch

import httpx
import pytest

from services.errors import TransientError
from services.inference import model_registry
from services.inference.client import LocalInferenceClient, RemoteInferenceClient


def _client(handler, api_key="hf_test"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteInferenceClient(
        base_url="https://inference.test/models/",
        ner_model="dslim/bert-base-NER",
        sentiment_model="j-hartmann/emotion-english-distilroberta-base",
        api_key=api_key,
        http_client=http,
    )


class TestRemoteInferenceClient:
    @pytest.mark.asyncio
    async def test_classify_flattens_and_sorts(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json=[[{"label": "neutral", "score": 0.2}, {"label": "joy", "score": 0.8}]]
            )

        results = await _client(handler).classify("Happy to ship")

        assert [r["label"] for r in results] == ["joy", "neutral"]
        assert seen["url"] == "https://inference.test/models/j-hartmann/emotion-english-distilroberta-base"
        assert seen["auth"] == "Bearer hf_test"
        assert seen["body"] == {"inputs": "Happy to ship"}

    @pytest.mark.asyncio
    async def test_tag_entities(self):
        def handler(request):
            return httpx.Response(200, json=[{"entity_group": "ORG", "word": "Google", "score": 0.99}])

        tags = await _client(handler).tag_entities("at Google")
        assert tags == [{"entity_group": "ORG", "word": "Google", "score": 0.99}]

    @pytest.mark.asyncio
    async def test_no_auth_header_without_key(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=[])

        await _client(handler, api_key="").tag_entities("text")
        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_http_error_is_transient(self):
        client = _client(lambda request: httpx.Response(503, json={"error": "loading"}))
        with pytest.raises(TransientError):
            await client.classify("text")

    @pytest.mark.asyncio
    async def test_error_payload_is_transient(self):
        client = _client(lambda request: httpx.Response(200, json={"error": "Model is loading"}))
        with pytest.raises(TransientError, match="Model is loading"):
            await client.tag_entities("text")

    @pytest.mark.asyncio
    async def test_non_json_is_transient(self):
        client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(TransientError):
            await client.classify("text")

    @pytest.mark.asyncio
    async def test_malformed_classification_is_transient(self):
        client = _client(lambda request: httpx.Response(200, json=[{"unexpected": True}]))
        with pytest.raises(TransientError):
            await client.classify("text")

    @pytest.mark.asyncio
    async def test_transport_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(TransientError):
            await _client(handler).tag_entities("text")


class TestLocalInferenceClient:
    @pytest.fixture(autouse=True)
    def _reset_registry(self):
        model_registry.clear()
        yield
        model_registry.clear()

    @pytest.mark.asyncio
    @patch("services.inference.model_registry._create_pipeline")
    async def test_pipelines_are_loaded_once(self, mock_create):
        mock_create.return_value = lambda text: [[{"label": "joy", "score": 0.7}]]
        client = LocalInferenceClient("ner-model", "sentiment-model")

        await client.classify("one")
        results = await client.classify("two")

        assert results == [{"label": "joy", "score": 0.7}]
        mock_create.assert_called_once_with("text-classification", "sentiment-model")

    @pytest.mark.asyncio
    @patch("services.inference.model_registry._create_pipeline")
    async def test_scores_are_plain_floats(self, mock_create):
        class Score(float):
            pass

        mock_create.return_value = lambda text: [{"entity_group": "ORG", "word": "Acme", "score": Score(0.5)}]
        tags = await LocalInferenceClient("ner-model", "sentiment-model").tag_entities("Acme")
        assert type(tags[0]["score"]) is float

    @pytest.mark.asyncio
    @patch("services.inference.model_registry._create_pipeline")
    async def test_pipeline_errors_are_transient(self, mock_create):
        mock_create.side_effect = OSError("model download failed")
        with pytest.raises(TransientError):
            await LocalInferenceClient("ner-model", "sentiment-model").tag_entities("text")
