import pytest

from hamkae.tools.auth import LoginRequired
from hamkae.views.account import sign_in
from hamkae.views.exchange import load_my_pins, load_point_exchange, paginate, redeem
from hamkae.views.formatting import confidence_bar, format_date
from hamkae.views.history import delete_report, load_report_history, load_verification_history
from hamkae.views.home import load_home
from hamkae.views.mypage import adjust_points, display_name, load_mypage
from hamkae.views.report import submit_report, validate_report
from hamkae.views.upload import load_upload_page, submit_cleanup


def marker(marker_id, photos=(), status="ACTIVE"):
    return {
        "id": marker_id,
        "lat": 37.5665,
        "lng": 126.978,
        "description": f"trash #{marker_id}",
        "status": status,
        "createdAt": "2024-05-01T10:00:00Z",
        "photos": list(photos),
    }


BEFORE = {"id": 1, "type": "BEFORE", "imagePath": "/images/before.jpg"}


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def test_format_date_in_display_timezone() -> None:
    assert format_date("2024-05-01T10:00:00Z") == "2024-05-01 19:00"
    assert format_date("2024-05-01T10:00:00") == "2024-05-01 10:00"
    assert format_date(None) == "-"
    assert format_date("yesterday-ish") == "-"


def test_confidence_bar_clamps() -> None:
    assert confidence_bar(None) == ""
    assert confidence_bar(50, width=10) == "[#####-----] 50%"
    assert confidence_bar(150, width=4) == "[####] 100%"


# ---------------------------------------------------------------------------
# Home / account
# ---------------------------------------------------------------------------

def test_home_is_public(client, session, auth) -> None:
    session.routes[("GET", "/markers")] = {"success": True, "message": "", "data": [marker(1, [BEFORE])]}
    view = load_home(client, auth, {"display": {}})
    assert view["error"] is None
    assert view["markers"][0]["status_label"] == "활성"
    assert view["markers"][0]["photos"][0]["image_url"] == "http://img.test/images/before.jpg"


def test_sign_in_caches_form_username(client, session, auth) -> None:
    session.routes[("POST", "/auth/login")] = {"token": "jwt-1", "user": {"id": 1, "name": "Kim", "points": 300}}
    result = sign_in(client, auth, " kim ", "pw")
    assert result["ok"]
    assert auth.token == "jwt-1"
    assert auth.username == "kim"
    assert session.calls[-1]["json"] == {"username": "kim", "password": "pw"}


def test_sign_in_bad_credentials(client, session, auth) -> None:
    session.routes[("POST", "/auth/login")] = (401, {"message": "bad"})
    result = sign_in(client, auth, "kim", "wrong")
    assert not result["ok"]
    assert result["message"] == "Incorrect username or password."
    assert not auth.is_authenticated


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("lat,lng,desc,ok", [
    ("37.5", "127.0", "bags by the bench", True),
    ("37.5", "127.0", "   ", False),
    ("abc", "127.0", "x", False),
    ("91", "0", "x", False),
    ("0", "-181", "x", False),
])
def test_validate_report(lat, lng, desc, ok) -> None:
    assert (validate_report(lat, lng, desc) is None) is ok


def test_submit_report_sends_multipart(client, session, logged_in) -> None:
    session.routes[("POST", "/markers")] = {"marker_id": 7, "uploaded_images": ["/images/x.jpg"], "image_count": 1}
    result = submit_report(client, logged_in, "37.5", "127", "bags", [("x.jpg", b"\xff\xd8")])
    assert result["ok"]
    assert result["marker_id"] == 7
    call = session.calls[-1]
    assert call["data"] == {"lat": "37.5", "lng": "127.0", "description": "bags"}
    assert call["files"][0][0] == "images"
    assert call["files"][0][1] == ("x.jpg", b"\xff\xd8", "image/jpeg")


def test_submit_report_requires_login(client, auth) -> None:
    with pytest.raises(LoginRequired):
        submit_report(client, auth, "1", "1", "x")


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

def test_report_history(client, session, logged_in, cfg) -> None:
    session.routes[("GET", "/markers/my-reports")] = [marker(1, [BEFORE]), marker(2, status="CLEANED")]
    view = load_report_history(client, logged_in, cfg)
    assert view["count"] == 2
    assert [m["status_label"] for m in view["reports"]] == ["활성", "청소완료"]
    assert view["reports"][0]["created"] == "2024-05-01 19:00"


def test_report_history_401_logs_out(client, session, logged_in, cfg) -> None:
    session.routes[("GET", "/markers/my-reports")] = (401, None)
    with pytest.raises(LoginRequired):
        load_report_history(client, logged_in, cfg)
    assert logged_in.username is None


def test_report_history_server_error_is_shown(client, session, logged_in, cfg) -> None:
    session.routes[("GET", "/markers/my-reports")] = (500, {"message": "boom"})
    view = load_report_history(client, logged_in, cfg)
    assert view["reports"] == []
    assert view["error"] == "The server hit an internal error. Please try again shortly."


def test_delete_report(client, session, logged_in) -> None:
    session.routes[("DELETE", "/markers/3")] = {"success": True, "message": "deleted", "data": None}
    assert delete_report(client, logged_in, 3)["ok"]
    assert not delete_report(client, logged_in, 4)["ok"]


def test_verification_history_reads_photo_or_status(client, session, logged_in, cfg) -> None:
    after = {"id": 20, "type": "AFTER", "imagePath": "/images/after.jpg", "verificationStatus": "APPROVED",
             "gptResponse": 'Result {"confidence": 0.93, "reason": "spotless"}'}
    session.routes[("GET", "/markers/my-verifications")] = [
        marker(1, [BEFORE, after], status="CLEANED"),
        marker(2, [BEFORE], status="CLEANED"),
        marker(3, status="CLEANED"),
    ]
    session.routes[("GET", "/ai-verification/status/2")] = {
        "markerId": 2, "verificationStatus": "COMPLETED", "verificationResult": "APPROVED",
        "gptResponse": "APPROVED - area is clean",
    }
    session.routes[("GET", "/ai-verification/status/3")] = (500, {"message": "down"})

    view = load_verification_history(client, logged_in, cfg)
    assert view["error"] is None
    assert [v["id"] for v in view["verifications"]] == [1, 2, 3]

    first, second, third = view["verifications"]
    assert first["summary"] == {"confidence": 93, "reasoning": "spotless"}
    assert first["verification_status"] == "APPROVED"
    assert first["points_label"] == "+100P"
    assert second["summary"] == {"verification_result": "APPROVED", "confidence": 90}
    assert third["summary"] == {}
    assert third["confidence_bar"] == ""
    # marker 1 answered from its photo, no status lookup
    assert "/ai-verification/status/1" not in session.paths("GET")


# ---------------------------------------------------------------------------
# Upload / verification
# ---------------------------------------------------------------------------

def test_upload_page_maps_status(client, session, logged_in, cfg) -> None:
    after = {"id": 2, "type": "AFTER", "imagePath": "/images/after.jpg"}
    session.routes[("GET", "/markers/5")] = marker(5, [BEFORE, after])
    session.routes[("GET", "/ai-verification/status/5")] = {
        "markerId": 5, "verificationStatus": "REJECTED", "gptResponse": '{"confidence": 0.2, "reason": "trash left"}',
    }
    view = load_upload_page(client, logged_in, cfg, 5)
    assert [p["id"] for p in view["before_photos"]] == [1]
    assert view["status"] == "COMPLETED"
    assert view["result"] == "REJECTED"
    assert view["summary"] == {"confidence": 20, "reasoning": "trash left"}


def test_upload_page_pending_when_status_missing(client, session, logged_in, cfg) -> None:
    session.routes[("GET", "/markers/5")] = marker(5, [BEFORE])
    view = load_upload_page(client, logged_in, cfg, 5)
    assert view["status"] == "PENDING"
    assert view["error"] is None


def test_upload_page_unknown_marker(client, logged_in, cfg) -> None:
    view = load_upload_page(client, logged_in, cfg, 99)
    assert view["marker"] is None
    assert view["error"] == "The requested item could not be found."


def test_submit_cleanup_approved_marks_cleaned(client, session, logged_in, cfg) -> None:
    session.routes[("POST", "/photos/upload/cleanup")] = {"success": True, "message": "ok", "data": {"photoId": 9}}
    session.routes[("POST", "/ai-verification/verify/5")] = {
        "success": True, "verificationResult": "APPROVED", "confidence": 0.95,
        "gptResponse": '{"verification_result": "APPROVED", "confidence": 0.95, "reason": "clean"}',
    }
    session.routes[("PATCH", "/markers/5/status")] = {"success": True, "message": "ok", "data": None}

    outcome = submit_cleanup(client, logged_in, cfg, 5, [("a.jpg", b"1"), ("b.png", b"2")])
    assert outcome["status"] == "COMPLETED"
    assert outcome["result"] == "APPROVED"
    assert outcome["marker_cleaned"]
    assert outcome["points_awarded"] == 100
    assert outcome["summary"] == {"confidence": 95, "reasoning": "clean"}
    assert session.paths("POST").count("/photos/upload/cleanup") == 2
    patch_call = [c for c in session.calls if c["method"] == "PATCH"][0]
    assert patch_call["json"] == {"status": "CLEANED"}


def test_submit_cleanup_rejected_keeps_marker(client, session, logged_in, cfg) -> None:
    session.routes[("POST", "/photos/upload/cleanup")] = {"photoId": 9}
    session.routes[("POST", "/ai-verification/verify/5")] = {
        "success": True, "verificationResult": "REJECTED", "gptResponse": "REJECTED: bottles remain",
    }
    outcome = submit_cleanup(client, logged_in, cfg, 5, [("a.jpg", b"1")])
    assert outcome["status"] == "COMPLETED"
    assert outcome["result"] == "REJECTED"
    assert not outcome["marker_cleaned"]
    assert outcome["points_awarded"] == 0
    assert "bottles remain" in outcome["message"]
    assert "PATCH" not in [c["method"] for c in session.calls]


def test_submit_cleanup_upload_failure(client, session, logged_in, cfg) -> None:
    session.routes[("POST", "/photos/upload/cleanup")] = (400, {"message": "image too large"})
    outcome = submit_cleanup(client, logged_in, cfg, 5, [("a.jpg", b"1")])
    assert outcome["status"] == "ERROR"
    assert "/ai-verification/verify/5" not in session.paths()


def test_submit_cleanup_verifier_failure(client, session, logged_in, cfg) -> None:
    session.routes[("POST", "/photos/upload/cleanup")] = {"photoId": 9}
    session.routes[("POST", "/ai-verification/verify/5")] = {"success": False, "errorMessage": "no BEFORE photo"}
    outcome = submit_cleanup(client, logged_in, cfg, 5, [("a.jpg", b"1")])
    assert outcome["status"] == "COMPLETED"
    assert outcome["result"] is None
    assert outcome["message"] == "AI verification failed: no BEFORE photo"


def test_submit_cleanup_needs_photos(client, logged_in, cfg) -> None:
    outcome = submit_cleanup(client, logged_in, cfg, 5, [])
    assert outcome["status"] == "PENDING"
    assert outcome["message"] == "Select at least one photo to upload."


# ---------------------------------------------------------------------------
# My page / points
# ---------------------------------------------------------------------------

def test_display_name_priority(auth) -> None:
    from hamkae.schemas.user import UserProfile
    assert display_name(auth, None) == "사용자"
    assert display_name(auth, UserProfile(username="kim99")) == "kim99"
    assert display_name(auth, UserProfile(name="Kim", username="kim99")) == "Kim"
    auth.login("t", "cached")
    assert display_name(auth, UserProfile(name="Kim")) == "cached"


def test_load_mypage(client, session, logged_in) -> None:
    session.routes[("GET", "/api/users/profile")] = {"id": 1, "name": "Kim", "points": 10, "totalEarnedPoints": 900}
    session.routes[("GET", "/api/users/points/summary")] = {
        "totalEarned": 1200, "totalUsed": 500, "currentPoints": 700, "availablePoints": 700,
    }
    view = load_mypage(client, logged_in)
    assert view["display_name"] == "tester"
    assert view["current_points"] == 700
    assert view["total_earned_points"] == 1200
    assert view["total_used_points"] == 500


def test_adjust_points_validates(client, session, logged_in) -> None:
    assert not adjust_points(client, logged_in, "-5")["ok"]
    assert not adjust_points(client, logged_in, "lots")["ok"]
    session.routes[("POST", "/api/users/points/admin-set")] = {"oldPoints": 0, "newPoints": 5000}
    result = adjust_points(client, logged_in, "5000")
    assert result["ok"]
    assert result["message"] == "Points adjusted: 0P -> 5000P"


def test_paginate() -> None:
    items = list(range(13))
    assert paginate(items, 1, 6) == ([0, 1, 2, 3, 4, 5], 1, 3)
    assert paginate(items, 3, 6) == ([12], 3, 3)
    assert paginate(items, 99, 6)[1] == 3
    assert paginate([], 1, 6) == ([], 1, 1)


def test_point_exchange_page(client, session, logged_in, cfg) -> None:
    session.routes[("GET", "/api/users/points/summary")] = {"currentPoints": 5200, "availablePoints": 5200}
    session.routes[("GET", "/api/point-history")] = [
        {"id": i, "points": 100, "type": "EARNED", "description": "cleanup", "createdAt": "2024-05-01T00:00:00Z"}
        for i in range(8)
    ]
    view = load_point_exchange(client, logged_in, cfg, page=2)
    assert view["page"] == 2 and view["total_pages"] == 2
    assert len(view["history"]) == 2
    assert view["history"][0]["type_label"] == "적립"
    assert view["current_points"] == 5200
    assert view["error"] is None


def test_point_exchange_partial_failure(client, session, logged_in, cfg) -> None:
    session.routes[("GET", "/api/point-history")] = []
    session.routes[("GET", "/api/users/points/summary")] = (500, None)
    view = load_point_exchange(client, logged_in, cfg)
    assert view["current_points"] == 0
    assert view["error"] is not None


def test_redeem_returns_pin(client, session, logged_in, cfg) -> None:
    session.routes[("POST", "/api/rewards")] = {"success": True, "message": "ok", "data": {"fullPinNumber": "1234-5678"}}
    result = redeem(client, logged_in, cfg)
    assert result["ok"]
    assert result["pin"] == "1234-5678"
    assert session.calls[-1]["json"] == {"pointsUsed": 5000, "rewardType": "FIVE_THOUSAND"}


def test_redeem_not_enough_points(client, session, logged_in, cfg) -> None:
    session.routes[("POST", "/api/rewards")] = {"success": False, "message": "포인트가 부족합니다"}
    result = redeem(client, logged_in, cfg)
    assert not result["ok"]
    assert result["message"] == "포인트가 부족합니다"


def test_my_pins(client, session, logged_in, cfg) -> None:
    session.routes[("GET", "/api/reward-pins")] = [
        {"id": 1, "maskedPinNumber": "1234-****", "rewardType": "FIVE_THOUSAND", "pointsUsed": 5000,
         "issuedAt": "2024-05-01T00:00:00Z", "isUsed": False, "isExpired": True},
    ]
    view = load_my_pins(client, logged_in, cfg)
    assert view["pins"][0]["pin"] == "1234-****"
    assert view["pins"][0]["state"] == "expired"
    assert view["pins"][0]["expires"] == "-"


def test_verification_history_401_in_status_lookup_logs_out(client, session, logged_in, cfg) -> None:
    session.routes[("GET", "/markers/my-verifications")] = [marker(1, [BEFORE], status="CLEANED")]
    session.routes[("GET", "/ai-verification/status/1")] = (401, None)
    with pytest.raises(LoginRequired):
        load_verification_history(client, logged_in, cfg)
    assert not logged_in.is_authenticated
    assert logged_in.username is None


def test_verification_history_tolerates_malformed_status_body(client, session, logged_in, cfg) -> None:
    session.routes[("GET", "/markers/my-verifications")] = [marker(1, status="CLEANED"), marker(2, status="CLEANED")]
    session.routes[("GET", "/ai-verification/status/1")] = {"markerId": 1, "beforePhotoCount": "many"}
    session.routes[("GET", "/ai-verification/status/2")] = {"markerId": 2, "gptResponse": "REJECTED"}
    view = load_verification_history(client, logged_in, cfg)
    assert view["error"] is None
    first, second = view["verifications"]
    assert first["summary"] == {}
    assert second["summary"] == {"verification_result": "REJECTED", "confidence": 0}
