from pydantic import BaseModel, Field


class SkillProgressUpdate(BaseModel):
    skill_name: str = Field(..., min_length=1, max_length=100, description="Skill to update")
    delta: int = Field(..., ge=-100, le=100, description="Progress change, clamped to 0-100")
