from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from personalizer.models import TensionLevel


class ArcPoint(BaseModel):
    position: float = 0.0  # 0-100 through the item
    emotion: str
    intensity: float = 0.0


class PeakMoment(BaseModel):
    position: float = 0.0
    emotion: Optional[str] = None
    description: str = ""


class ContentEmotionalProfile(BaseModel):
    """
    Emotional shape of one catalog item. Every field is optional; the
    compatibility scorer treats missing data as "no match".
    """
    item_id: Optional[str] = None
    emotional_arc: List[ArcPoint] = Field(default_factory=list)
    peak_moments: List[PeakMoment] = Field(default_factory=list)
    overall_tone: Optional[str] = None
    tension_level: Optional[TensionLevel] = None


class ItemSummary(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    author_name: Optional[str] = None
    genre: Optional[str] = None
    cover_image_url: Optional[str] = None
    published_at: Optional[datetime] = None

    class Config:
        from_attributes = True
