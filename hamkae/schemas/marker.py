from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional


class MarkerPhoto(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[int] = None
    type: Optional[str] = None
    image_path: Optional[str] = None
    verification_status: Optional[str] = None
    gpt_response: Optional[str] = None
    created_at: Optional[str] = None


class Marker(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: int
    lat: Optional[float] = None
    lng: Optional[float] = None
    description: str = ""
    status: str = "ACTIVE"
    address: Optional[str] = None
    created_at: Optional[str] = None
    photos: List[MarkerPhoto] = Field(default_factory=list)


class MarkerCreated(BaseModel):
    marker_id: int
    uploaded_images: List[str] = Field(default_factory=list)
    image_count: int = 0
