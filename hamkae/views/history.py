# hamkae/views/history.py
"""
Report history and verification history pages.

Both pages list the current user's markers. The verification page also
shows, for each cleaned marker, what the AI verifier said about it; that
free-text response goes through the shared extractor so both pages (and
the upload page) read it the same way.
"""
from concurrent.futures import ThreadPoolExecutor, as_completed

from pydantic import ValidationError

from hamkae.api.markers import delete_marker, list_my_reports, list_my_verifications
from hamkae.api.verification import get_verification_status
from hamkae.schemas.marker import Marker
from hamkae.tools.api_client import ApiClient, ApiError, user_message
from hamkae.tools.auth import AuthSession
from hamkae.tools.json_extract import extract_verification_summary
from hamkae.tools.logger import get_logger
from hamkae.views.common import marker_view, raise_if_unauthorized
from hamkae.views.formatting import confidence_bar

log = get_logger("history")


# ---------------------------------------------------------------------------
# Report history
# ---------------------------------------------------------------------------

def load_report_history(client: ApiClient, auth: AuthSession, cfg: dict) -> dict:
    auth.require()
    try:
        reports = list_my_reports(client)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Loading report history failed: {e}")
        return {"reports": [], "count": 0, "error": user_message(e, "Could not load your reports.")}

    log.debug(f"Report history: {len(reports)} marker(s)")
    return {
        "reports": [marker_view(client, cfg, m) for m in reports],
        "count": len(reports),
        "error": None,
    }


def delete_report(client: ApiClient, auth: AuthSession, marker_id: int) -> dict:
    auth.require()
    try:
        delete_marker(client, marker_id)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Deleting marker {marker_id} failed: {e}")
        return {"ok": False, "message": user_message(e, "Could not delete the report. Please try again.")}
    return {"ok": True, "message": "The report was deleted."}


# ---------------------------------------------------------------------------
# Verification history
# ---------------------------------------------------------------------------

def _gpt_response_for(client: ApiClient, marker: Marker) -> tuple:
    """
    (verification_status, gpt_response, error) for a marker, from its AFTER
    photo or the status endpoint. error is the ApiError the lookup hit, if any.
    """
    for photo in marker.photos:
        if (photo.type or "").upper() == "AFTER" and photo.gpt_response:
            return photo.verification_status, photo.gpt_response, None
    try:
        status = get_verification_status(client, marker.id)
    except ApiError as e:
        log.warning(f"Verification status for marker {marker.id} unavailable: {e}")
        return None, None, e
    except ValidationError as e:
        log.warning(f"Verification status for marker {marker.id} unreadable: {e}")
        return None, None, None
    return status.verification_status, status.gpt_response, None


def _verification_entry(client: ApiClient, cfg: dict, marker: Marker, status, gpt_response) -> dict:
    summary = extract_verification_summary(gpt_response)
    entry = marker_view(client, cfg, marker)
    entry.update({
        "verification_status": status,
        "gpt_response": gpt_response or "",
        "summary": summary.as_dict(),
        "confidence_bar": confidence_bar(summary.confidence),
        "points_label": f"+{int(cfg.get('points', {}).get('reward_per_cleanup', 100))}P",
    })
    return entry


def load_verification_history(client: ApiClient, auth: AuthSession, cfg: dict) -> dict:
    auth.require()
    try:
        markers = list_my_verifications(client)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Loading verification history failed: {e}")
        return {"verifications": [], "count": 0, "error": user_message(e, "Could not load your verifications.")}

    workers = max(1, int(cfg.get("api", {}).get("status_workers", 4)))
    results_by_id = {}
    if markers:
        with ThreadPoolExecutor(max_workers=min(workers, len(markers))) as executor:
            futures = {executor.submit(_gpt_response_for, client, m): m for m in markers}
            for fut in as_completed(futures):
                results_by_id[futures[fut].id] = fut.result()

    for _status, _gpt_response, err in results_by_id.values():
        if err is not None:
            raise_if_unauthorized(err, auth)

    # Rebuild in the order the server returned
    entries = [
        _verification_entry(client, cfg, m, *results_by_id.get(m.id, (None, None, None))[:2])
        for m in markers
    ]
    log.debug(f"Verification history: {len(entries)} marker(s)")
    return {"verifications": entries, "count": len(entries), "error": None}
