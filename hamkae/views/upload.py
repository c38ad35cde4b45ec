# hamkae/views/upload.py
"""
Cleanup upload page: show a reported marker with its BEFORE photos, take the
user's AFTER photos, run AI verification, and mark the marker CLEANED when
the verifier approves.

Page status flow: PENDING -> VERIFYING -> COMPLETED, or ERROR.
"""
from hamkae.api.markers import get_marker, update_marker_status, upload_cleanup_photos
from hamkae.api.verification import get_verification_status, verify_cleanup
from hamkae.tools.api_client import ApiClient, ApiError, user_message
from hamkae.tools.auth import AuthSession
from hamkae.tools.json_extract import extract_verification_summary
from hamkae.tools.logger import get_logger
from hamkae.views.common import marker_view, photo_view, raise_if_unauthorized
from hamkae.views.formatting import confidence_bar

log = get_logger("upload")

BEFORE_TYPES = (None, "", "BEFORE", "before")
FINISHED_STATUSES = ("APPROVED", "REJECTED")


def _summary_fields(gpt_response) -> dict:
    summary = extract_verification_summary(gpt_response)
    return {
        "gpt_response": gpt_response or "",
        "summary": summary.as_dict(),
        "confidence_bar": confidence_bar(summary.confidence),
    }


def load_upload_page(client: ApiClient, auth: AuthSession, cfg: dict, marker_id: int) -> dict:
    auth.require()
    view = {
        "marker_id": marker_id,
        "marker": None,
        "before_photos": [],
        "status": "PENDING",
        "result": None,
        "error": None,
    }
    view.update(_summary_fields(None))

    try:
        marker = get_marker(client, marker_id)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Loading marker {marker_id} failed: {e}")
        view["error"] = user_message(e, "Could not load the marker.")
        return view

    view["marker"] = marker_view(client, cfg, marker)
    view["before_photos"] = [photo_view(client, cfg, p) for p in marker.photos if p.type in BEFORE_TYPES]

    try:
        status = get_verification_status(client, marker_id)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.warning(f"Verification status for marker {marker_id} unavailable: {e}")
        return view

    state = (status.verification_status or "PENDING").upper()
    if state == "COMPLETED":
        view["status"] = "COMPLETED"
        view["result"] = status.verification_result or "UNKNOWN"
    elif state in FINISHED_STATUSES:
        view["status"] = "COMPLETED"
        view["result"] = state
    else:
        view["status"] = state
    view.update(_summary_fields(status.gpt_response))
    return view


def submit_cleanup(
    client: ApiClient,
    auth: AuthSession,
    cfg: dict,
    marker_id: int,
    images,
    show_progress: bool = False,
) -> dict:
    auth.require()
    outcome = {
        "marker_id": marker_id,
        "status": "PENDING",
        "result": None,
        "message": "",
        "marker_cleaned": False,
        "points_awarded": 0,
    }
    outcome.update(_summary_fields(None))

    images = list(images or [])
    if not images:
        outcome["message"] = "Select at least one photo to upload."
        return outcome

    try:
        upload_cleanup_photos(client, marker_id, images, show_progress=show_progress)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Cleanup upload for marker {marker_id} failed: {e}")
        outcome["status"] = "ERROR"
        outcome["message"] = f"Upload failed: {user_message(e)}"
        return outcome

    outcome["status"] = "VERIFYING"
    log.info(f"AI verification started: marker_id={marker_id}")
    try:
        result = verify_cleanup(client, marker_id)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"AI verification for marker {marker_id} failed: {e}")
        outcome["status"] = "ERROR"
        outcome["message"] = user_message(e, "AI verification hit an error.")
        return outcome

    if not result.success:
        outcome["status"] = "COMPLETED"
        outcome["message"] = "AI verification failed: " + (result.error_message or "unknown verification error")
        return outcome

    outcome["result"] = result.verification_result
    outcome.update(_summary_fields(result.gpt_response))
    log.info(f"AI verification result: marker_id={marker_id} result={result.verification_result}")

    if result.verification_result == "APPROVED":
        reward = int(cfg.get("points", {}).get("reward_per_cleanup", 100))
        outcome["points_awarded"] = reward
        outcome["message"] = f"AI verification passed! {reward} points were added. The cleaned marker is hidden from the map."
        try:
            update_marker_status(client, marker_id, "CLEANED")
            outcome["marker_cleaned"] = True
        except ApiError as e:
            raise_if_unauthorized(e, auth)
            log.error(f"Marking marker {marker_id} CLEANED failed: {e}")
            outcome["message"] += f" The marker status could not be updated ({e.message})."
    elif result.verification_result == "REJECTED":
        outcome["message"] = "AI verification failed: " + (result.gpt_response or "the area does not look clean yet.")
    else:
        outcome["message"] = f"Unexpected verification result: {result.verification_result}"

    outcome["status"] = "COMPLETED"
    return outcome
