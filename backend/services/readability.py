"""Local readability statistics (Flesch reading ease / Flesch-Kincaid grade)."""

import re

from nltk.tokenize import PunktSentenceTokenizer, RegexpTokenizer

from models.schemas.analysis_result import ReadabilityResult

# Untrained Punkt parameters: no corpus download needed
_sentence_tokenizer = PunktSentenceTokenizer()
_word_tokenizer = RegexpTokenizer(r"[A-Za-z0-9]+(?:'[A-Za-z]+)?")

_VOWEL_GROUPS = re.compile(r"[aeiouy]+")
DIFFICULT_WORD_SYLLABLES = 3


def tokenize_sentences(text: str) -> list[str]:
    # Paragraph breaks are sentence boundaries even without punctuation
    sentences: list[str] = []
    for block in re.split(r"\n\s*\n", text):
        sentences.extend(s for s in _sentence_tokenizer.tokenize(block) if s.strip())
    return sentences


def tokenize_words(text: str) -> list[str]:
    return _word_tokenizer.tokenize(text)


def count_syllables(word: str) -> int:
    """Vowel-group heuristic with a silent trailing 'e' adjustment."""
    word = word.lower()
    if not word.isalpha():
        return 1
    groups = len(_VOWEL_GROUPS.findall(word))
    if word.endswith("e") and not word.endswith(("le", "ee")) and groups > 1:
        groups -= 1
    return max(groups, 1)


def compute_readability(text: str) -> ReadabilityResult:
    words = tokenize_words(text or "")
    word_count = len(words)
    if word_count == 0:
        return ReadabilityResult()
    sentence_count = len(tokenize_sentences(text))

    syllables = [count_syllables(w) for w in words]
    words_per_sentence = word_count / max(sentence_count, 1)
    syllables_per_word = sum(syllables) / word_count

    flesch = 206.835 - 1.015 * words_per_sentence - 84.6 * syllables_per_word
    grade = 0.39 * words_per_sentence + 11.8 * syllables_per_word - 15.59

    return ReadabilityResult(
        sentence_count=sentence_count,
        word_count=word_count,
        avg_sentence_length=round(words_per_sentence, 2),
        avg_word_length=round(sum(len(w) for w in words) / word_count, 2),
        flesch_score=round(flesch, 2),
        flesch_grade_level=round(grade, 2),
        difficult_words=sum(1 for s in syllables if s >= DIFFICULT_WORD_SYLLABLES),
    )
