from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional


class PointSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    total_earned: int = 0
    total_used: int = 0
    current_points: int = 0
    available_points: int = 0


class PointHistoryEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[int] = None
    points: int = 0
    type: str = "EARNED"
    description: Optional[str] = None
    related_photo_id: Optional[int] = None
    created_at: Optional[str] = None


class RewardPin(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[int] = None
    reward_id: Optional[int] = None
    masked_pin_number: Optional[str] = None
    full_pin_number: Optional[str] = None
    reward_type: Optional[str] = None
    points_used: Optional[int] = None
    issued_at: Optional[str] = None
    expires_at: Optional[str] = None
    is_used: bool = False
    used_at: Optional[str] = None
    is_available: bool = True
    is_expired: bool = False
