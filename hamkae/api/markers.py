# hamkae/api/markers.py
import mimetypes
import os
from contextlib import ExitStack

from hamkae.schemas.marker import Marker, MarkerCreated, MarkerPhoto
from hamkae.tools.api_client import ApiClient, ApiError, unwrap
from hamkae.tools.logger import get_logger

log = get_logger("markers")


def _as_list(body) -> list:
    return body if isinstance(body, list) else []


def _file_part(stack: ExitStack, item):
    """
    Accepts a filesystem path or a ready (filename, bytes/fileobj[, content_type]) tuple.
    Returns a requests multipart tuple.
    """
    if isinstance(item, (str, os.PathLike)):
        path = os.fspath(item)
        ctype = mimetypes.guess_type(path)[0] or "application/octet-stream"
        return (os.path.basename(path), stack.enter_context(open(path, "rb")), ctype)
    if isinstance(item, tuple) and len(item) == 2:
        name, content = item
        return (name, content, mimetypes.guess_type(name)[0] or "application/octet-stream")
    return item


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

def list_active_markers(client: ApiClient) -> list[Marker]:
    return [Marker.model_validate(m) for m in _as_list(unwrap(client.get("/markers")))]


def get_marker(client: ApiClient, marker_id: int) -> Marker:
    body = unwrap(client.get(f"/markers/{marker_id}"))
    if not isinstance(body, dict):
        raise ApiError(f"Marker {marker_id} not found", status=404)
    return Marker.model_validate(body)


def list_markers_by_user(client: ApiClient, user_id: int) -> list[Marker]:
    return [Marker.model_validate(m) for m in _as_list(unwrap(client.get(f"/markers/user/{user_id}")))]


def list_my_reports(client: ApiClient) -> list[Marker]:
    return [Marker.model_validate(m) for m in _as_list(unwrap(client.get("/markers/my-reports")))]


def list_my_verifications(client: ApiClient) -> list[Marker]:
    return [Marker.model_validate(m) for m in _as_list(unwrap(client.get("/markers/my-verifications")))]


def create_marker(client: ApiClient, lat: float, lng: float, description: str, images=()) -> MarkerCreated:
    with ExitStack() as stack:
        files = [("images", _file_part(stack, img)) for img in images]
        body = unwrap(client.post(
            "/markers",
            data={"lat": str(lat), "lng": str(lng), "description": description},
            files=files or None,
        ))
    log.info(f"Marker created: {body}")
    return MarkerCreated.model_validate(body or {})


def delete_marker(client: ApiClient, marker_id: int) -> None:
    unwrap(client.delete(f"/markers/{marker_id}"))
    log.info(f"Marker deleted: marker_id={marker_id}")


def update_marker_status(client: ApiClient, marker_id: int, status: str) -> None:
    unwrap(client.patch(f"/markers/{marker_id}/status", json={"status": status.upper()}))
    log.info(f"Marker status updated: marker_id={marker_id} status={status.upper()}")


# ---------------------------------------------------------------------------
# Photos
# ---------------------------------------------------------------------------

def list_marker_photos(client: ApiClient, marker_id: int) -> list[MarkerPhoto]:
    body = unwrap(client.get(f"/photos/marker/{marker_id}"))
    if isinstance(body, dict):
        body = body.get("photos", [])
    return [MarkerPhoto.model_validate(p) for p in _as_list(body)]


def upload_cleanup_photo(client: ApiClient, marker_id: int, image) -> dict:
    with ExitStack() as stack:
        body = unwrap(client.post(
            "/photos/upload/cleanup",
            data={"marker_id": str(marker_id)},
            files={"image": _file_part(stack, image)},
        ))
    return body if isinstance(body, dict) else {}


def upload_cleanup_photos(client: ApiClient, marker_id: int, images, show_progress: bool = False) -> list[dict]:
    """The backend takes one cleanup photo per request; upload them in order."""
    images = list(images)
    results = []
    if show_progress:
        from tqdm import tqdm
        with tqdm(total=len(images), desc="Uploading", unit=" photo", leave=False) as pbar:
            for image in images:
                results.append(upload_cleanup_photo(client, marker_id, image))
                pbar.update(1)
    else:
        for image in images:
            results.append(upload_cleanup_photo(client, marker_id, image))
    log.info(f"Uploaded {len(results)} cleanup photo(s) for marker_id={marker_id}")
    return results
