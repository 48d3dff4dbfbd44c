from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date
from personalizer.models import RecommendationSource


class Recommendation(BaseModel):
    item_id: str
    title: str
    description: Optional[str] = None
    author_name: Optional[str] = None
    genre: Optional[str] = None
    cover_image_url: Optional[str] = None
    score: float
    reason: str  # Always present, human-readable
    source: RecommendationSource
    source_item_title: Optional[str] = None  # Set for affinity ("because you read X")
    compatibility: Optional[int] = None  # 0-100, only when the item has an emotional profile


class RecommendationsResponse(BaseModel):
    """Response wrapper for recommendations that includes request_id for event tracking."""
    request_id: str
    items: List[Recommendation]


class DailyPicks(BaseModel):
    date: date
    items: List[Recommendation]


class CompatibilityResult(BaseModel):
    score: int = Field(50, ge=0, le=100)
    reasons: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class CompatibilityResponse(CompatibilityResult):
    user_id: str
    item_id: str
    item_found: bool
