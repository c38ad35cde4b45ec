from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Literal, Optional

VerificationTag = Literal["APPROVED", "REJECTED", "UNKNOWN"]


class VerificationSummary(BaseModel):
    """Display summary of a free-text AI verification response."""
    confidence: Optional[int] = None
    reasoning: Optional[str] = None
    verification_result: Optional[VerificationTag] = None
    raw: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.as_dict()

    def as_dict(self) -> dict:
        return self.model_dump(exclude_none=True)


class VerificationOutcome(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    success: bool = False
    verification_result: Optional[str] = None
    gpt_response: Optional[str] = None
    confidence: Optional[float] = None
    error_message: Optional[str] = None
    verified_at: Optional[str] = None


class VerificationStatus(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    marker_id: Optional[int] = None
    has_before_photos: bool = False
    before_photo_count: int = 0
    has_after_photos: bool = False
    after_photo_count: int = 0
    verification_status: str = "PENDING"
    verification_result: Optional[str] = None
    gpt_response: Optional[str] = None
