# hamkae/api/points.py
from hamkae.schemas.points import PointHistoryEntry, RewardPin
from hamkae.tools.api_client import ApiClient, unwrap


def get_point_history(client: ApiClient) -> list[PointHistoryEntry]:
    body = unwrap(client.get("/api/point-history"))
    return [PointHistoryEntry.model_validate(e) for e in (body if isinstance(body, list) else [])]


def redeem_points(client: ApiClient, points_used: int, reward_type: str) -> dict:
    """Exchange points for a gift voucher. The issued PIN comes back in the response."""
    body = unwrap(client.post("/api/rewards", json={"pointsUsed": int(points_used), "rewardType": reward_type}))
    return body if isinstance(body, dict) else {}


def list_reward_pins(client: ApiClient) -> list[RewardPin]:
    body = unwrap(client.get("/api/reward-pins"))
    return [RewardPin.model_validate(p) for p in (body if isinstance(body, list) else [])]
