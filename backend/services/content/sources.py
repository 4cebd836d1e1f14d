"""External article sources (DEV Community REST, Hashnode GraphQL).

Each source pairs a fetch coroutine with a filter over raw items and a
transform into ``Article``. Fetch failures degrade to an empty list.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx

from models.schemas.article import Article

logger = logging.getLogger(__name__)

MAX_ARTICLES_PER_SKILL = 3
MIN_READING_TIME = 3   # minutes
MAX_READING_TIME = 30  # minutes

DEV_API_URL = "https://dev.to/api/articles"
HASHNODE_API_URL = "https://api.hashnode.com"

_HASHNODE_QUERY = """query GetArticles($tag: String!) {
    storiesFeed(type: FEATURED, tag: $tag) {
        title
        brief
        slug
        coverImage
        dateAdded
        readTime
        tags {
            name
        }
    }
}"""

_PLACEHOLDER_COLORS = ("6c63ff", "4d44db", "ff6584", "28a745", "17a2b8")

FetchFn = Callable[[httpx.AsyncClient, str, float], Awaitable[list[dict[str, Any]]]]


@dataclass(frozen=True)
class ArticleSource:
    name: str
    fetch: FetchFn
    filter: Callable[[dict[str, Any]], bool]
    transform: Callable[[dict[str, Any]], Article]


def default_image(tag: str | None) -> str:
    """Placeholder cover image, colored by tag length."""
    tag = tag or ""
    color = _PLACEHOLDER_COLORS[len(tag) % len(_PLACEHOLDER_COLORS)]
    text = quote(tag[:20]) if tag else "article"
    return f"https://via.placeholder.com/600x400/{color}/ffffff?text={text}"


def _reading_time_ok(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and MIN_READING_TIME <= value <= MAX_READING_TIME
    )


# ---------------------------------------------------------------------------
# DEV Community
# ---------------------------------------------------------------------------

def _dev_first_tag(item: dict[str, Any]) -> str | None:
    tags = item.get("tag_list") or []
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]
    return tags[0] if tags else None


async def _fetch_dev(client: httpx.AsyncClient, skill: str, timeout: float) -> list[dict[str, Any]]:
    response = await client.get(
        DEV_API_URL,
        params={"per_page": MAX_ARTICLES_PER_SKILL * 2, "top": 7, "tag": skill},
        timeout=timeout,
    )
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, list):
        raise ValueError("DEV response is not a list")
    return data


def _filter_dev(item: dict[str, Any]) -> bool:
    title = item.get("title")
    return bool(
        title
        and item.get("url")
        and "sponsor" not in str(title).lower()
        and _reading_time_ok(item.get("reading_time_minutes"))
    )


def _transform_dev(item: dict[str, Any]) -> Article:
    tag = _dev_first_tag(item)
    return Article(
        title=item["title"],
        url=item["url"],
        description=item.get("description") or "No description available",
        tag=tag or "general",
        image=item.get("cover_image") or default_image(tag),
        published_at=item.get("published_at") or "",
        reading_time=int(item["reading_time_minutes"]),
        source="DEV Community",
    )


# ---------------------------------------------------------------------------
# Hashnode
# ---------------------------------------------------------------------------

def _hashnode_first_tag(item: dict[str, Any]) -> str | None:
    tags = item.get("tags") or []
    if tags and isinstance(tags[0], dict):
        return tags[0].get("name")
    return None


async def _fetch_hashnode(client: httpx.AsyncClient, skill: str, timeout: float) -> list[dict[str, Any]]:
    response = await client.post(
        HASHNODE_API_URL,
        json={"query": _HASHNODE_QUERY, "variables": {"tag": skill}},
        timeout=timeout,
    )
    response.raise_for_status()
    feed = (response.json().get("data") or {}).get("storiesFeed")
    if not isinstance(feed, list):
        raise ValueError("Hashnode response has no storiesFeed")
    return feed


def _filter_hashnode(item: dict[str, Any]) -> bool:
    return bool(item.get("title") and item.get("slug") and _reading_time_ok(item.get("readTime")))


def _transform_hashnode(item: dict[str, Any]) -> Article:
    tag = _hashnode_first_tag(item)
    return Article(
        title=item["title"],
        url=f"https://hashnode.com/post/{item['slug']}",
        description=item.get("brief") or "No description available",
        tag=tag or "general",
        image=item.get("coverImage") or default_image(tag),
        published_at=item.get("dateAdded") or "",
        reading_time=int(item["readTime"]),
        source="Hashnode",
    )


DEV_COMMUNITY = ArticleSource("DEV Community", _fetch_dev, _filter_dev, _transform_dev)
HASHNODE = ArticleSource("Hashnode", _fetch_hashnode, _filter_hashnode, _transform_hashnode)

SOURCES: tuple[ArticleSource, ...] = (DEV_COMMUNITY, HASHNODE)


async def fetch_from_source(
    client: httpx.AsyncClient, source: ArticleSource, skill: str, timeout: float
) -> list[Article]:
    try:
        raw = await source.fetch(client, skill, timeout)
        return [source.transform(item) for item in raw if isinstance(item, dict) and source.filter(item)]
    except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning("Error fetching from %s for '%s': %s", source.name, skill, e)
        return []


def deduplicate(articles: list[Article]) -> list[Article]:
    """Drop repeated URLs, keeping the first occurrence."""
    seen: set[str] = set()
    unique = []
    for article in articles:
        if article.url in seen:
            continue
        seen.add(article.url)
        unique.append(article)
    return unique
