# hamkae/views/report.py
from hamkae.api.markers import create_marker
from hamkae.tools.api_client import ApiClient, ApiError, user_message
from hamkae.tools.auth import AuthSession
from hamkae.tools.logger import get_logger
from hamkae.views.common import raise_if_unauthorized

log = get_logger("report")


def validate_report(lat, lng, description) -> str | None:
    """Error message for bad input, or None."""
    if not (description or "").strip():
        return "Please describe the litter location."
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        return "Latitude and longitude must be numbers."
    if not -90 <= lat <= 90:
        return "Latitude must be between -90 and 90."
    if not -180 <= lng <= 180:
        return "Longitude must be between -180 and 180."
    return None


def submit_report(client: ApiClient, auth: AuthSession, lat, lng, description: str, images=()) -> dict:
    auth.require()
    err = validate_report(lat, lng, description)
    if err:
        return {"ok": False, "marker_id": None, "image_count": 0, "message": err}

    try:
        created = create_marker(client, float(lat), float(lng), description.strip(), list(images or []))
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Report submission failed: {e}")
        return {"ok": False, "marker_id": None, "image_count": 0, "message": user_message(e, "Could not submit the report.")}

    return {
        "ok": True,
        "marker_id": created.marker_id,
        "image_count": created.image_count,
        "message": f"Report registered (marker #{created.marker_id}, {created.image_count} photo(s)).",
    }
