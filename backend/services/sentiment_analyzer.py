"""Resume tone classification through the inference capability."""

import logging

from models.schemas.analysis_result import SentimentResult
from services.inference.client import InferenceClient

logger = logging.getLogger(__name__)

# Classifier input is truncated; tone is judged on the opening of the resume
MAX_INPUT_CHARS = 2000


def neutral_sentiment() -> SentimentResult:
    return SentimentResult(label="neutral", score=1.0, all_results=[])


class SentimentAnalyzer:
    def __init__(self, inference: InferenceClient) -> None:
        self._inference = inference

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        """Return the top label with all scores, or neutral on any failure."""
        if not text or not text.strip():
            return neutral_sentiment()
        try:
            results = await self._inference.classify(text[:MAX_INPUT_CHARS])
        except Exception as e:
            logger.warning("Sentiment analysis failed: %s", e)
            return neutral_sentiment()

        if not results:
            return neutral_sentiment()
        try:
            ranked = [{"label": str(r["label"]), "score": float(r["score"])} for r in results]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed sentiment output, using neutral: %s", e)
            return neutral_sentiment()
        return SentimentResult(label=ranked[0]["label"], score=ranked[0]["score"], all_results=ranked)
