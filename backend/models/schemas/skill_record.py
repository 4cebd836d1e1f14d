"""Per-user skill progress as stored in the skills cache."""

from datetime import datetime

from pydantic import BaseModel, Field


class SkillRecord(BaseModel):
    name: str
    level: int = Field(default=0, ge=0, le=100)
    target_level: int = Field(default=50, ge=0, le=100)
    category: str = "other"
    last_practiced: datetime | None = None
    progress: int = Field(default=0, ge=0, le=100)

    @property
    def gap(self) -> int:
        return self.target_level - self.level
