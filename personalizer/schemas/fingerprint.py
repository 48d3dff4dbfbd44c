from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from personalizer.models import (
    EmotionChannel,
    EventType,
    JourneyArchetype,
    JumpScareReaction,
    PacePreference,
    RereadBehavior,
    RomanceComfort,
    TensionLevel,
    ViolenceThreshold,
    WeekdaySkew,
)


class EmotionalProfile(BaseModel):
    joy: int = Field(50, ge=0, le=100)
    sadness: int = Field(50, ge=0, le=100)
    excitement: int = Field(50, ge=0, le=100)
    fear: int = Field(50, ge=0, le=100)
    romance: int = Field(50, ge=0, le=100)
    nostalgia: int = Field(50, ge=0, le=100)
    wonder: int = Field(50, ge=0, le=100)
    tension: int = Field(50, ge=0, le=100)
    # Context tags with no channel mapping; bounded, oldest evicted first
    unmapped_channels: Dict[str, int] = Field(default_factory=dict)

    def channel(self, channel: EmotionChannel) -> int:
        return getattr(self, channel.value)

    def channels(self) -> Dict[EmotionChannel, int]:
        return {channel: self.channel(channel) for channel in EmotionChannel}


class PacingProfile(BaseModel):
    preferred_tension_level: TensionLevel = TensionLevel.MEDIUM
    tension_recovery_rate: int = Field(50, ge=0, le=100)
    cliffhanger_tolerance: int = Field(50, ge=0, le=100)
    action_pace_pref: PacePreference = PacePreference.BALANCED


class SensitivityProfile(BaseModel):
    violence_threshold: ViolenceThreshold = ViolenceThreshold.MODERATE
    romance_comfort: RomanceComfort = RomanceComfort.SUGGESTIVE
    dark_themes_tolerance: int = Field(50, ge=0, le=100)
    jump_scare_reaction: JumpScareReaction = JumpScareReaction.TOLERATE


class EngagementSignals(BaseModel):
    avg_reading_speed: float = 200.0  # words per minute
    reread_behavior: RereadBehavior = RereadBehavior.SOMETIMES
    abandonment_triggers: List[str] = Field(default_factory=list)
    completion_motivators: List[str] = Field(default_factory=list)


class TemporalPatterns(BaseModel):
    preferred_reading_times: List[str] = Field(default_factory=list)  # "morning", "late_night", ...
    session_length_by_mood: Dict[str, float] = Field(default_factory=dict)
    weekday_vs_weekend: WeekdaySkew = WeekdaySkew.NO_DIFF


class EmotionalFingerprint(BaseModel):
    user_id: str
    emotional_profile: EmotionalProfile = Field(default_factory=EmotionalProfile)
    pacing_profile: PacingProfile = Field(default_factory=PacingProfile)
    sensitivity_profile: SensitivityProfile = Field(default_factory=SensitivityProfile)
    engagement_signals: EngagementSignals = Field(default_factory=EngagementSignals)
    temporal_patterns: TemporalPatterns = Field(default_factory=TemporalPatterns)
    emotional_journey_preference: JourneyArchetype = JourneyArchetype.BALANCED
    data_points: int = Field(0, ge=0)
    confidence_score: int = Field(0, ge=0, le=100)
    version: int = 1
    last_updated: Optional[datetime] = None


class EmotionalEventIn(BaseModel):
    """Raw behavioral event as submitted by a client."""
    event_type: str
    item_id: str
    chapter_id: Optional[str] = None
    emotional_context: Optional[str] = None
    duration: Optional[float] = None  # seconds
    timestamp: Optional[datetime] = None


class NormalizedEvent(BaseModel):
    """Canonical event shape produced by the ingestor."""
    event_type: EventType
    item_id: str
    chapter_id: Optional[str] = None
    context_tag: Optional[str] = None
    channel: Optional[EmotionChannel] = None
    duration: Optional[float] = None
    occurred_at: datetime


class RecordEventResponse(BaseModel):
    event_type: EventType
    item_id: str
    data_points: int
    confidence_score: int
    emotional_journey_preference: JourneyArchetype


class EventHistoryItem(BaseModel):
    id: str
    event_type: str
    item_id: str
    chapter_id: Optional[str] = None
    emotional_context: Optional[str] = None
    duration: Optional[float] = None
    occurred_at: datetime

    class Config:
        from_attributes = True


class RadarPoint(BaseModel):
    emotion: str
    value: int


class JourneyInfo(BaseModel):
    archetype: JourneyArchetype
    description: str
    narrative_structure: str
    preferred_emotions: List[EmotionChannel]
    avoided_patterns: List[str]


class FingerprintInsights(BaseModel):
    radar_data: List[RadarPoint]
    dominant_emotion: str
    emotional_range: str  # narrow | moderate | wide
    insights: List[str]
    journey: JourneyInfo
    confidence_score: int
