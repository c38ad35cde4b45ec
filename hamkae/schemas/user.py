from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional


class LoginUser(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    points: int = 0


class LoginResult(BaseModel):
    token: str
    user: LoginUser = LoginUser()


class UserProfile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[int] = None
    name: Optional[str] = None
    username: Optional[str] = None
    points: int = 0
    total_earned_points: Optional[int] = None
    total_used_points: Optional[int] = None
    reported_markers_count: int = 0
    uploaded_photos_count: int = 0
    reward_exchange_count: int = 0
    issued_pins_count: Optional[int] = None
    created_at: Optional[str] = None
