# hamkae/views/exchange.py
import math

from hamkae.api.points import get_point_history, list_reward_pins, redeem_points
from hamkae.api.users import get_points_summary
from hamkae.schemas.points import PointSummary
from hamkae.tools.api_client import ApiClient, ApiError, user_message
from hamkae.tools.auth import AuthSession
from hamkae.tools.logger import get_logger
from hamkae.views.common import display_tz, raise_if_unauthorized
from hamkae.views.formatting import format_date, point_type_label

log = get_logger("exchange")


def _points_cfg(cfg: dict) -> dict:
    return cfg.get("points", {})


def paginate(items: list, page: int, page_size: int) -> tuple:
    """(items on page, clamped page, total pages). Always at least one page."""
    page_size = max(1, int(page_size))
    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(1, int(page)), total_pages)
    start = (page - 1) * page_size
    return items[start:start + page_size], page, total_pages


def load_point_exchange(client: ApiClient, auth: AuthSession, cfg: dict, page: int = 1) -> dict:
    auth.require()
    error = None

    try:
        summary = get_points_summary(client)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Loading point summary failed: {e}")
        summary = PointSummary()
        error = user_message(e, "Could not load your points.")

    try:
        history = get_point_history(client)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Loading point history failed: {e}")
        history = []
        error = error or user_message(e, "Could not load your point history.")

    rows = [
        {
            "date": format_date(h.created_at, display_tz(cfg)),
            "points": h.points,
            "type": h.type,
            "type_label": point_type_label(h.type),
            "description": h.description or "",
        }
        for h in history
    ]
    page_rows, page, total_pages = paginate(rows, page, _points_cfg(cfg).get("history_page_size", 6))

    return {
        "display_name": auth.username or "사용자",
        "current_points": summary.current_points,
        "available_points": summary.available_points,
        "exchange_points": int(_points_cfg(cfg).get("exchange_points", 5000)),
        "history": page_rows,
        "page": page,
        "total_pages": total_pages,
        "error": error,
    }


def redeem(client: ApiClient, auth: AuthSession, cfg: dict) -> dict:
    auth.require()
    points_cfg = _points_cfg(cfg)
    points = int(points_cfg.get("exchange_points", 5000))
    reward_type = points_cfg.get("exchange_reward_type", "FIVE_THOUSAND")
    try:
        body = redeem_points(client, points, reward_type)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Voucher exchange failed: {e}")
        return {"ok": False, "pin": None, "message": user_message(e, "The exchange failed.")}

    pin = body.get("fullPinNumber") or body.get("pinNumber")
    log.info(f"Voucher issued: reward_type={reward_type} points={points}")
    message = "Voucher exchanged! A PIN was issued."
    if pin:
        message += f" PIN: {pin}"
    return {"ok": True, "pin": pin, "message": message}


def load_my_pins(client: ApiClient, auth: AuthSession, cfg: dict) -> dict:
    auth.require()
    try:
        pins = list_reward_pins(client)
    except ApiError as e:
        raise_if_unauthorized(e, auth)
        log.error(f"Loading reward pins failed: {e}")
        return {"pins": [], "error": user_message(e, "Could not load your PINs.")}

    tz_name = display_tz(cfg)
    return {
        "pins": [
            {
                "pin": p.masked_pin_number or p.full_pin_number or "-",
                "reward_type": p.reward_type or "-",
                "points_used": p.points_used or 0,
                "issued": format_date(p.issued_at, tz_name),
                "expires": format_date(p.expires_at, tz_name),
                "state": "used" if p.is_used else ("expired" if p.is_expired else "available"),
            }
            for p in pins
        ],
        "error": None,
    }
