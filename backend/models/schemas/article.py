"""Learning content normalized from the external article sources."""

from pydantic import BaseModel


class Article(BaseModel):
    title: str
    url: str
    description: str = "No description available"
    tag: str = "general"
    image: str = ""
    published_at: str = ""
    reading_time: int = 0
    source: str = ""


class RankedArticle(Article):
    skill: str
    category: str = "other"
    relevance: float = 0.0
