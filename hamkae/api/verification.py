# hamkae/api/verification.py
from hamkae.schemas.verification import VerificationOutcome, VerificationStatus
from hamkae.tools.api_client import ApiClient, ApiError, unwrap


def verify_cleanup(client: ApiClient, marker_id: int) -> VerificationOutcome:
    """Ask the backend to compare the marker's BEFORE and AFTER photos."""
    body = unwrap(client.post(f"/ai-verification/verify/{marker_id}"))
    if not isinstance(body, dict) or "success" not in body:
        raise ApiError("Could not read the verification response", payload=body)
    return VerificationOutcome.model_validate(body)


def get_verification_status(client: ApiClient, marker_id: int) -> VerificationStatus:
    body = unwrap(client.get(f"/ai-verification/status/{marker_id}"))
    if not isinstance(body, dict):
        return VerificationStatus(marker_id=marker_id)
    return VerificationStatus.model_validate(body)
