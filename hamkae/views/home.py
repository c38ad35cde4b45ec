# hamkae/views/home.py
from hamkae.api.markers import list_active_markers
from hamkae.tools.api_client import ApiClient, ApiError, user_message
from hamkae.tools.auth import AuthSession
from hamkae.tools.logger import get_logger
from hamkae.views.common import marker_view

log = get_logger("home")


def load_home(client: ApiClient, auth: AuthSession, cfg: dict) -> dict:
    """Active markers waiting for cleanup. Public; login only changes the greeting."""
    view = {
        "username": auth.username,
        "is_authenticated": auth.is_authenticated,
        "markers": [],
        "error": None,
    }
    try:
        markers = list_active_markers(client)
    except ApiError as e:
        log.error(f"Loading markers failed: {e}")
        view["error"] = user_message(e, "Could not load the map markers.")
        return view
    view["markers"] = [marker_view(client, cfg, m) for m in markers]
    return view
