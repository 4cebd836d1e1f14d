"""Keyword and important-phrase extraction for resume text.

Keywords are frequency-ranked content words. Important phrases are runs of
consecutive nouns found with a part-of-speech tagger, ranked by frequency.
"""

import logging
import re
from collections import Counter
from typing import Callable

import nltk
from nltk.tag import RegexpTagger
from nltk.tokenize import RegexpTokenizer
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

logger = logging.getLogger(__name__)

STOPWORDS: frozenset[str] = frozenset(ENGLISH_STOP_WORDS)

MIN_KEYWORD_LENGTH = 4
_DIGIT_RE = re.compile(r"\d")
_word_tokenizer = RegexpTokenizer(r"\w+")

# ---------------------------------------------------------------------------
# POS tagging: the averaged perceptron tagger when its data is installed,
# otherwise a suffix-rule tagger that defaults to NN.
# ---------------------------------------------------------------------------
_FALLBACK_TAG_PATTERNS: list[tuple[str, str]] = [
    (r"^-?\d+(?:\.\d+)?$", "CD"),
    (r"(?i)^(?:the|a|an|this|that|these|those|each|every)$", "DT"),
    (r"(?i)^(?:and|or|but|nor)$", "CC"),
    (r"(?i)^(?:in|on|at|with|for|of|to|from|by|over|under|into|across)$", "IN"),
    (r"(?i)^(?:i|we|you|he|she|it|they|me|us|them|my|our|your)$", "PRP"),
    (r"(?i)^(?:is|are|was|were|be|been|being|am)$", "VB"),
    (r"(?i).*ing$", "VBG"),
    (r"(?i).*ed$", "VBD"),
    (r"(?i).*ly$", "RB"),
    (r"(?i).*(?:able|ible|ful|ous|ive|al|ic)$", "JJ"),
    (r".*", "NN"),
]

_pos_tag: Callable[[list[str]], list[tuple[str, str]]] | None = None


def _get_pos_tagger() -> Callable[[list[str]], list[tuple[str, str]]]:
    """Resolve the POS tagger once, lazily."""
    global _pos_tag
    if _pos_tag is None:
        try:
            nltk.data.find("taggers/averaged_perceptron_tagger_eng")
            _pos_tag = nltk.pos_tag
            logger.info("Using NLTK averaged perceptron tagger")
        except LookupError:
            logger.warning("NLTK tagger data not installed, using rule-based POS tagger")
            _pos_tag = RegexpTagger(_FALLBACK_TAG_PATTERNS).tag
    return _pos_tag


def _is_keyword(token: str) -> bool:
    return (
        len(token) >= MIN_KEYWORD_LENGTH
        and token not in STOPWORDS
        and not _DIGIT_RE.search(token)
    )


def extract_keywords(text: str) -> list[str]:
    """Content words by descending frequency (ties keep first occurrence).

    Tokens are lowercased; stop-words, tokens of length <= 3 and tokens
    containing digits are dropped.
    """
    tokens = _word_tokenizer.tokenize((text or "").lower())
    counts = Counter(t for t in tokens if _is_keyword(t))
    return [word for word, _ in counts.most_common()]


def extract_important_phrases(text: str) -> list[str]:
    """Noun-run phrases by descending frequency (ties keep first occurrence)."""
    tokens = _word_tokenizer.tokenize(text or "")
    if not tokens:
        return []

    tagged = _get_pos_tagger()(tokens)
    phrases: list[str] = []
    current: list[str] = []
    for word, tag in tagged:
        if tag and tag.startswith("NN") and word.lower() not in STOPWORDS:
            current.append(word)
        elif current:
            phrases.append(" ".join(current))
            current = []
    if current:
        phrases.append(" ".join(current))

    return [phrase for phrase, _ in Counter(phrases).most_common()]
