# hamkae/views/mypage.py
from concurrent.futures import ThreadPoolExecutor

from hamkae.api.users import get_points_summary, get_profile, set_points_for_testing
from hamkae.schemas.points import PointSummary
from hamkae.schemas.user import UserProfile
from hamkae.tools.api_client import ApiClient, ApiError, user_message
from hamkae.tools.auth import AuthSession
from hamkae.tools.logger import get_logger
from hamkae.views.common import raise_if_unauthorized

DEFAULT_DISPLAY_NAME = "사용자"

log = get_logger("mypage")


def display_name(auth: AuthSession, profile: UserProfile | None) -> str:
    # cached login name first, then whatever the server knows
    if auth.username:
        return auth.username
    if profile is not None and profile.name:
        return profile.name
    if profile is not None and profile.username:
        return profile.username
    return DEFAULT_DISPLAY_NAME


def load_mypage(client: ApiClient, auth: AuthSession) -> dict:
    auth.require()
    try:
        with ThreadPoolExecutor(max_workers=2) as executor:
            profile_fut = executor.submit(get_profile, client)
            summary_fut = executor.submit(get_points_summary, client)
            profile: UserProfile = profile_fut.result()
            summary: PointSummary = summary_fut.result()
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Loading profile failed: {e}")
        return {
            "display_name": display_name(auth, None),
            "profile": None,
            "current_points": 0,
            "total_earned_points": 0,
            "total_used_points": 0,
            "error": user_message(e, "Could not load your profile."),
        }

    return {
        "display_name": display_name(auth, profile),
        "profile": profile,
        "current_points": summary.current_points or profile.points or 0,
        "total_earned_points": summary.total_earned or profile.total_earned_points or 0,
        "total_used_points": summary.total_used or profile.total_used_points or 0,
        "error": None,
    }


def adjust_points(client: ApiClient, auth: AuthSession, raw_points) -> dict:
    """Test helper behind the My page point-adjust form."""
    auth.require()
    try:
        points = int(raw_points)
    except (TypeError, ValueError):
        return {"ok": False, "message": "Enter a valid point value."}
    if points < 0:
        return {"ok": False, "message": "Enter a valid point value."}

    try:
        result = set_points_for_testing(client, points)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        return {"ok": False, "message": f"Point adjustment failed: {user_message(e)}"}
    return {
        "ok": True,
        "message": f"Points adjusted: {result.get('oldPoints', '?')}P -> {result.get('newPoints', points)}P",
    }
