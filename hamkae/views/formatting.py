# hamkae/views/formatting.py
from dateutil import parser as date_parser
from dateutil import tz

MARKER_STATUS_LABELS = {
    "ACTIVE": "활성",
    "CLEANED": "청소완료",
    "REMOVED": "제거됨",
}

PHOTO_TYPE_LABELS = {
    "BEFORE": "제보",
    "AFTER": "청소",
}

POINT_TYPE_LABELS = {
    "EARNED": "적립",
    "USED": "사용",
}


def format_date(value, tz_name: str = "Asia/Seoul") -> str:
    """
    ISO timestamp -> 'YYYY-MM-DD HH:MM' in the display timezone.
    Naive timestamps are taken as already being in that timezone.
    """
    if not value:
        return "-"
    try:
        dt = date_parser.isoparse(str(value))
    except (ValueError, OverflowError):
        return "-"
    zone = tz.gettz(tz_name)
    if zone is not None:
        dt = dt.astimezone(zone) if dt.tzinfo else dt.replace(tzinfo=zone)
    return dt.strftime("%Y-%m-%d %H:%M")


def marker_status_label(status) -> str:
    return MARKER_STATUS_LABELS.get(status, status or "")


def photo_type_label(photo_type) -> str:
    return PHOTO_TYPE_LABELS.get(photo_type, photo_type or "")


def point_type_label(point_type) -> str:
    return POINT_TYPE_LABELS.get(point_type, point_type or "")


def format_coords(lat, lng) -> str:
    if lat is None or lng is None:
        return "-"
    return f"{float(lat):.6f}, {float(lng):.6f}"


def confidence_bar(confidence, width: int = 20) -> str:
    """Text bar for a 0-100 confidence; values outside the range are clamped."""
    if confidence is None:
        return ""
    pct = max(0, min(100, int(confidence)))
    filled = round(width * pct / 100)
    return "[" + "#" * filled + "-" * (width - filled) + f"] {pct}%"
