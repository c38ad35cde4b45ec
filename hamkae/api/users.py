# hamkae/api/users.py
from hamkae.schemas.points import PointSummary
from hamkae.schemas.user import LoginResult, UserProfile
from hamkae.tools.api_client import ApiClient, ApiError, unwrap


def login(client: ApiClient, username: str, password: str) -> LoginResult:
    body = unwrap(client.post("/auth/login", json={"username": username, "password": password}))
    if not isinstance(body, dict) or not body.get("token"):
        raise ApiError("Login response did not include a token", payload=body)
    return LoginResult.model_validate(body)


def register(client: ApiClient, name: str, username: str, password: str) -> dict:
    body = unwrap(client.post(
        "/auth/register",
        json={"name": name, "username": username, "password": password},
    ))
    return body if isinstance(body, dict) else {}


def get_profile(client: ApiClient) -> UserProfile:
    return UserProfile.model_validate(unwrap(client.get("/api/users/profile")) or {})


def update_profile(client: ApiClient, name: str | None = None, password: str | None = None) -> UserProfile:
    payload = {k: v for k, v in {"name": name, "password": password}.items() if v}
    return UserProfile.model_validate(unwrap(client.put("/auth/users/profile", json=payload)) or {})


def get_points_summary(client: ApiClient) -> PointSummary:
    return PointSummary.model_validate(unwrap(client.get("/api/users/points/summary")) or {})


def set_points_for_testing(client: ApiClient, points: int) -> dict:
    """Admin/test helper: overwrite the current user's balance. Returns {oldPoints, newPoints}."""
    if points < 0:
        raise ValueError("points must be >= 0")
    body = unwrap(client.post("/api/users/points/admin-set", json={"points": int(points)}))
    return body if isinstance(body, dict) else {}
