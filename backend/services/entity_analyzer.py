"""Resume entity extraction (skills, companies, titles, education, certifications).

Results are cached by a SHA-256 hash of the input text, since extraction is
deterministic for a given input. On a miss the text goes to the inference
capability and its tagged tokens are mapped into five buckets. If inference
fails in any way, a regex/keyword heuristic runs over the same text instead.
``extract_entities`` never raises.
"""

import hashlib
import logging
import re

from models.schemas.analysis_result import Entities
from services.cache.user_cache import Namespace, UserCache
from services.errors import TransientError
from services.inference.client import InferenceClient
from services.skill_taxonomy import scan_skills

logger = logging.getLogger(__name__)

EDUCATION_KEYWORDS: tuple[str, ...] = ("university", "college", "institute", "school", "academy")
TITLE_KEYWORDS: tuple[str, ...] = ("engineer", "developer", "manager", "director", "specialist")

# Entity type (without the B-/I- prefix) -> bucket. ORG and PER are routed
# further by _bucket_for.
_TAG_MAP: dict[str, str] = {
    "TECH": "skills",
    "ORG": "companies",
    "PER": "titles",
    "EDU": "education",
    "CERT": "certifications",
}

_BUCKETS: tuple[str, ...] = ("skills", "companies", "titles", "education", "certifications")


def hash_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def clean_entity_text(text: str) -> str:
    """Strip subword markers and punctuation, collapse whitespace.

    ``+ # . /`` survive inside a name (c++, c#, node.js, ci/cd); trailing
    dots and slashes do not.
    """
    if not text or not isinstance(text, str):
        return ""
    text = re.sub(r"\s*##\s*", "", text)
    text = re.sub(r"[^\w\s+#./-]", "", text)
    return re.sub(r"\s+", " ", text).strip().rstrip("./").strip()


def is_educational_institution(text: str) -> bool:
    lower = text.lower()
    return any(k in lower for k in EDUCATION_KEYWORDS)


def is_likely_title(text: str) -> bool:
    lower = text.lower()
    return any(k in lower for k in TITLE_KEYWORDS)


def _bucket_for(entity_type: str, text: str) -> str | None:
    bucket = _TAG_MAP.get(entity_type)
    if bucket == "companies" and is_educational_institution(text):
        return "education"
    if bucket == "titles" and not is_likely_title(text):
        return None
    return bucket


def _dedupe(values: list[str]) -> list[str]:
    """Deduplicate case-insensitively, keeping the first spelling."""
    seen: set[str] = set()
    deduped: list[str] = []
    for val in values:
        cleaned = clean_entity_text(val)
        key = cleaned.casefold()
        if len(cleaned) > 1 and key not in seen:
            seen.add(key)
            deduped.append(cleaned)
    return deduped


def _split_tag(tag: dict) -> tuple[str, str]:
    """Return (bio_prefix, entity_type) for raw or aggregated token output."""
    if "entity_group" in tag:
        return "B", str(tag["entity_group"]).upper()
    label = str(tag.get("entity", "")).upper()
    if len(label) > 2 and label[1] == "-" and label[0] in "BI":
        return label[0], label[2:]
    return "B", label


def _decode_spans(tags: list[dict]) -> list[tuple[str, str]]:
    """Merge BIO-tagged tokens and ``##`` subword pieces into (type, text) spans."""
    spans: list[tuple[str, str]] = []
    for tag in tags:
        word = tag.get("word")
        if not isinstance(word, str) or not word.strip():
            continue
        prefix, entity_type = _split_tag(tag)
        if not entity_type:
            continue
        continues = spans and spans[-1][0] == entity_type and (prefix == "I" or word.startswith("##"))
        if continues:
            last_type, last_text = spans[-1]
            joined = last_text + word[2:] if word.startswith("##") else f"{last_text} {word.strip()}"
            spans[-1] = (last_type, joined)
        else:
            spans.append((entity_type, word.strip()))
    return spans


def map_tagged_tokens(tags: list[dict]) -> Entities:
    """Map inference output into the five entity buckets."""
    buckets: dict[str, list[str]] = {b: [] for b in _BUCKETS}
    for entity_type, raw_text in _decode_spans(tags):
        text = clean_entity_text(raw_text)
        if not text:
            continue
        bucket = _bucket_for(entity_type, text)
        if bucket is not None:
            buckets[bucket].append(text)
    return Entities(**{b: _dedupe(v) for b, v in buckets.items()})


# ---------------------------------------------------------------------------
# Heuristic fallback
# ---------------------------------------------------------------------------

_COMPANY_RE = re.compile(r"\bat\s+([A-Z][a-zA-Z0-9&]+(?:[ \t]+[A-Z][a-zA-Z0-9&]+)*)")
_EDUCATION_RES: tuple[re.Pattern, ...] = (
    re.compile(r"\b(?:university|college)\s+of\s+[A-Z][a-zA-Z]+(?:[ \t]+[A-Z][a-zA-Z]+)*", re.IGNORECASE),
    re.compile(r"\b(?:[A-Z][a-zA-Z]+[ \t]+)+(?:University|College|Institute|Academy)\b"),
)
_TITLE_RE = re.compile(
    r"\b(?:(?:senior|junior|lead|staff|principal)\s+)?"
    r"(?:[A-Z]?[a-z]+\s+)?(?:engineer|developer|manager|director|specialist)\b",
    re.IGNORECASE,
)
_CERT_RE = re.compile(r"\b(?:[A-Z][A-Za-z]*\s+)*Certified(?:\s+[A-Z][A-Za-z-]*)+")


def fallback_entity_extraction(text: str) -> Entities:
    """Regex/vocabulary pass with the same output shape as the model path."""
    if not text or not isinstance(text, str):
        return Entities()

    education = [m.group(0) for r in _EDUCATION_RES for m in r.finditer(text)]
    companies = [
        m.group(1) for m in _COMPANY_RE.finditer(text)
        if not is_educational_institution(m.group(1))
    ]
    return Entities(
        skills=_dedupe(scan_skills(text)),
        companies=_dedupe(companies),
        titles=_dedupe([m.group(0) for m in _TITLE_RE.finditer(text)]),
        education=_dedupe(education),
        certifications=_dedupe([m.group(0) for m in _CERT_RE.finditer(text)]),
    )


class EntityAnalyzer:
    def __init__(self, inference: InferenceClient, cache: UserCache) -> None:
        self._inference = inference
        self._cache = cache

    async def _cached(self, text_hash: str) -> Entities | None:
        data = await self._cache.get(Namespace.NER, text_hash)
        if data is None:
            return None
        try:
            return Entities.model_validate(data)
        except ValueError as e:
            logger.warning("Corrupt NER cache entry %s: %s; discarding", text_hash, e)
            await self._cache.invalidate(Namespace.NER, text_hash)
            return None

    async def _store(self, text_hash: str, entities: Entities) -> None:
        try:
            await self._cache.set(Namespace.NER, text_hash, entities)
        except Exception as e:
            logger.warning("Failed to cache NER result %s: %s", text_hash, e)

    async def extract_entities(self, text: str) -> Entities:
        if not text or not text.strip():
            return Entities()

        text_hash = hash_text(text)
        cached = await self._cached(text_hash)
        if cached is not None:
            logger.debug("NER cache hit %s", text_hash[:12])
            return cached

        try:
            tags = await self._inference.tag_entities(text)
            entities = map_tagged_tokens(tags)
        except TransientError as e:
            logger.warning("NER inference failed, using heuristic fallback: %s", e)
            return fallback_entity_extraction(text)
        except Exception as e:
            # malformed token dicts from the model land here
            logger.warning("Could not map NER output, using heuristic fallback: %s", e)
            return fallback_entity_extraction(text)

        await self._store(text_hash, entities)
        return entities
