from pydantic import BaseModel, Field
from typing import List, Optional


class ReadingPreferences(BaseModel):
    preferred_genres: List[str] = Field(default_factory=list)
    disliked_genres: List[str] = Field(default_factory=list)
    preferred_themes: List[str] = Field(default_factory=list)
    preferred_mood: List[str] = Field(default_factory=list)
    preferred_length: str = "any"  # short | medium | long | any
    reading_speed: str = "medium"  # slow | medium | fast
    learned: bool = False


class ReadingPreferencesUpdate(BaseModel):
    preferred_genres: Optional[List[str]] = None
    disliked_genres: Optional[List[str]] = None
    preferred_themes: Optional[List[str]] = None
    preferred_mood: Optional[List[str]] = None
    preferred_length: Optional[str] = None
    reading_speed: Optional[str] = None
