"""Tests for the analysis fan-out/fan-in."""

from unittest.mock import patch

import pytest

from services.entity_analyzer import EntityAnalyzer
from services.pipeline.analysis import MAX_KEYWORDS, ResumeAnalyzer
from services.sentiment_analyzer import SentimentAnalyzer
from tests.conftest import FakeInference

SAMPLE_RESUME = """
Jane Doe
Senior Software Engineer at Google

Experience
Built scalable microservices using Python and Kubernetes. Led a team of five
engineers delivering payment platform features. Improved deployment speed with
Docker and Terraform pipelines.

Education
Stanford University, Computer Science

Skills
Python, JavaScript, React, Docker, Kubernetes, PostgreSQL, Terraform
"""


def _analyzer(inference, cache):
    return ResumeAnalyzer(EntityAnalyzer(inference, cache), SentimentAnalyzer(inference))


@pytest.mark.asyncio
async def test_analysis_combines_all_stages(cache):
    inference = FakeInference(
        tags=[
            {"entity_group": "ORG", "word": "Google"},
            {"entity_group": "TECH", "word": "Python"},
            {"entity_group": "TECH", "word": "Docker"},
        ],
        classification=[{"label": "joy", "score": 0.95}, {"label": "neutral", "score": 0.05}],
    )

    result, skills = await _analyzer(inference, cache).analyze(SAMPLE_RESUME)

    assert result.sentiment.label == "joy"
    assert result.entities.companies == ["Google"]
    assert [s.name for s in skills] == ["Python", "Docker"]
    assert all(s.progress == 0 and s.last_practiced == result.last_updated for s in skills)
    assert result.readability.word_count > 0
    assert 0 < len(result.keywords) <= MAX_KEYWORDS
    assert 70 <= result.score <= 100
    assert result.strengths
    assert result.improvements


@pytest.mark.asyncio
async def test_analysis_degrades_when_inference_is_down(cache, failing_inference):
    result, skills = await _analyzer(failing_inference, cache).analyze(SAMPLE_RESUME)

    assert result.sentiment.label == "neutral"
    assert "Google" in result.entities.companies
    assert {"python", "kubernetes", "docker"} <= {s.name for s in skills}


@pytest.mark.asyncio
async def test_local_stage_failure_fails_the_analysis(cache, failing_inference):
    with patch("services.pipeline.analysis.compute_text_stats", side_effect=RuntimeError("tagger crashed")):
        with pytest.raises(RuntimeError, match="tagger crashed"):
            await _analyzer(failing_inference, cache).analyze(SAMPLE_RESUME)
