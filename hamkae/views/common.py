# hamkae/views/common.py
from hamkae.schemas.marker import Marker, MarkerPhoto
from hamkae.tools.api_client import ApiClient, ApiError
from hamkae.tools.auth import AuthSession, LoginRequired
from hamkae.views.formatting import (
    format_coords,
    format_date,
    marker_status_label,
    photo_type_label,
)


def display_tz(cfg: dict) -> str:
    return cfg.get("display", {}).get("timezone", "Asia/Seoul")


def fallback_image(cfg: dict) -> str:
    return cfg.get("display", {}).get("fallback_image", "/tresh.png")


def raise_if_unauthorized(err: ApiError, auth: AuthSession) -> None:
    """A 401 mid-page means the cached login is gone; send the user back to login."""
    if err.status == 401:
        auth.logout()
        raise LoginRequired("Login expired") from err


def photo_view(client: ApiClient, cfg: dict, photo: MarkerPhoto) -> dict:
    return {
        "id": photo.id,
        "type": photo.type,
        "type_label": photo_type_label(photo.type),
        "image_url": client.image_url_with_fallback(photo.image_path, fallback_image(cfg)),
        "verification_status": photo.verification_status,
    }


def marker_view(client: ApiClient, cfg: dict, marker: Marker) -> dict:
    return {
        "id": marker.id,
        "description": marker.description,
        "status": marker.status,
        "status_label": marker_status_label(marker.status),
        "address": marker.address,
        "created": format_date(marker.created_at, display_tz(cfg)),
        "coords": format_coords(marker.lat, marker.lng),
        "lat": marker.lat,
        "lng": marker.lng,
        "photos": [photo_view(client, cfg, p) for p in marker.photos],
    }
