from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Tone(str, Enum):
    FRIENDLY = "friendly"
    FORMAL = "formal"
    PERSUASIVE = "persuasive"
    PLAYFUL = "playful"


class Industry(str, Enum):
    MARKETING = "marketing"
    DESIGN = "design"
    COACHING = "coaching"
    TECH = "tech"
    CONSULTING = "consulting"
    OTHER = "other"


class ProposalRequest(BaseModel):
    client_name: str = Field(..., alias="clientName")
    project_type: str = Field(..., alias="projectType")
    project_description: str = Field(..., alias="projectDescription")
    tone: Tone = Tone.FRIENDLY
    industry: Industry = Industry.MARKETING
    budget: Optional[str] = None

    model_config = {"populate_by_name": True}

    @field_validator("client_name", "project_type", "project_description")
    @classmethod
    def must_not_be_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("budget")
    @classmethod
    def blank_budget_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()


class EmotionalScore(BaseModel):
    """Fixed-shape resonance score; each component is a percentage."""
    warmth: int = Field(..., ge=0, le=100)
    clarity: int = Field(..., ge=0, le=100)
    confidence: int = Field(..., ge=0, le=100)

    model_config = {"extra": "forbid"}

    @property
    def overall(self) -> int:
        return round((self.warmth + self.clarity + self.confidence) / 3)


class ProposalOut(BaseModel):
    id: int
    client_name: str
    project_type: str
    industry: str
    tone: str
    budget: Optional[str] = None
    content: str
    emotional_score: Optional[EmotionalScore] = None
    overall_score: Optional[int] = None
    created_at: datetime
