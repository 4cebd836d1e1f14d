from unittest.mock import patch

from services.keyword_extractor import (
    STOPWORDS,
    extract_important_phrases,
    extract_keywords,
)


def _capitalized_as_nouns(tokens):
    return [(t, "NN" if t[:1].isupper() else "VBD") for t in tokens]


def test_extract_keywords_orders_by_frequency():
    text = "Python developer building Python services with Docker and Python tooling"
    keywords = extract_keywords(text)
    assert keywords[0] == "python"
    assert "docker" in keywords
    assert "services" in keywords


def test_extract_keywords_drops_short_stopword_and_digit_tokens():
    keywords = extract_keywords("The API has 2020 releases and web3 apps for you")
    assert "the" not in keywords
    assert "api" not in keywords  # too short
    assert "2020" not in keywords
    assert "web3" not in keywords
    assert "releases" in keywords
    assert all(k not in STOPWORDS for k in keywords)


def test_extract_keywords_ties_keep_first_occurrence():
    assert extract_keywords("kubernetes terraform ansible") == ["kubernetes", "terraform", "ansible"]


def test_extract_keywords_empty():
    assert extract_keywords("") == []


@patch("services.keyword_extractor._get_pos_tagger")
def test_important_phrases_group_noun_runs(mock_tagger):
    mock_tagger.return_value = _capitalized_as_nouns
    text = "Senior Engineer led Google Cloud migration. Senior Engineer mentored interns."
    phrases = extract_important_phrases(text)
    assert phrases[0] == "Senior Engineer"
    assert "Google Cloud" in phrases


@patch("services.keyword_extractor._get_pos_tagger")
def test_important_phrases_skip_stopword_nouns(mock_tagger):
    mock_tagger.return_value = lambda tokens: [(t, "NN") for t in tokens]
    phrases = extract_important_phrases("Data the Pipeline")
    assert phrases == ["Data", "Pipeline"]


def test_important_phrases_empty():
    assert extract_important_phrases("   ") == []
