# hamkae/main.py
import os
import sys
import json
import copy
import argparse

import yaml
from dotenv import load_dotenv

from hamkae.tools.api_client import ApiError, client_from_config, user_message
from hamkae.tools.auth import LoginRequired, auth_from_config
from hamkae.tools.json_extract import extract_verification_summary
from hamkae.tools.logger import configure_logging, get_logger
from hamkae.views.account import sign_in, sign_out, sign_up
from hamkae.views.exchange import load_my_pins, load_point_exchange, redeem
from hamkae.views.history import delete_report, load_report_history, load_verification_history
from hamkae.views.home import load_home
from hamkae.views.mypage import adjust_points, load_mypage
from hamkae.views.report import submit_report
from hamkae.views.upload import load_upload_page, submit_cleanup

log = get_logger("cli")


# ----------------------------
# Configuration
# ----------------------------

DEFAULT_CONFIG = {
    "api": {
        "base_url": "https://hamkae.sku-sku.com",
        "image_base_url": "https://hamkae.sku-sku.com",
        "timeout_sec": 30,
        "max_retries": 2,
        "status_workers": 4,
    },
    "auth": {"storage_path": os.path.join("store", "auth.json")},
    "logging": {"level": "INFO", "file": None},
    "display": {"timezone": "Asia/Seoul", "fallback_image": "/tresh.png"},
    "points": {
        "exchange_points": 5000,
        "exchange_reward_type": "FIVE_THOUSAND",
        "history_page_size": 6,
        "reward_per_cleanup": 100,
    },
    "web": {"host": "127.0.0.1", "port": 8000},
}


def _merge(base: dict, override: dict) -> dict:
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(path: str = "config.yaml") -> dict:
    """
    Load configuration from config.yaml and apply environment variable overrides.
    Configuration hierarchy (highest to lowest precedence):
    1. Environment variables (HAMKAE_*)
    2. .env file
    3. config.yaml
    4. built-in defaults
    """
    # Load .env file if it exists (does not override existing env vars)
    load_dotenv(override=False)

    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            _merge(cfg, yaml.safe_load(f) or {})

    cfg["api"]["base_url"] = os.getenv("HAMKAE_API_BASE_URL", cfg["api"]["base_url"])
    cfg["api"]["image_base_url"] = os.getenv("HAMKAE_IMAGE_BASE_URL", cfg["api"]["image_base_url"])
    cfg["api"]["timeout_sec"] = int(os.getenv("HAMKAE_TIMEOUT_SEC", cfg["api"]["timeout_sec"]))
    cfg["api"]["max_retries"] = int(os.getenv("HAMKAE_MAX_RETRIES", cfg["api"]["max_retries"]))
    cfg["auth"]["storage_path"] = os.getenv("HAMKAE_AUTH_STORE", cfg["auth"]["storage_path"])
    cfg["logging"]["level"] = os.getenv("HAMKAE_LOG_LEVEL", cfg["logging"]["level"])
    cfg["logging"]["file"] = os.getenv("HAMKAE_LOG_FILE", cfg["logging"]["file"])
    cfg["display"]["timezone"] = os.getenv("HAMKAE_TIMEZONE", cfg["display"]["timezone"])

    return cfg


# ----------------------------
# Printers
# ----------------------------

def print_marker(m: dict) -> None:
    print(f"#{m['id']}  [{m['status_label'] or m['status']}]  {m['description']}")
    print(f"    reported: {m['created']}  location: {m['address'] or m['coords']}")
    for p in m["photos"]:
        print(f"    - {p['type_label'] or '?'} photo: {p['image_url']}")


def print_summary(view: dict) -> None:
    summary = view.get("summary") or {}
    if not summary:
        return
    if view.get("confidence_bar"):
        print(f"    confidence: {view['confidence_bar']}")
    if summary.get("verification_result"):
        print(f"    verdict: {summary['verification_result']}")
    if summary.get("reasoning"):
        print(f"    reasoning: {summary['reasoning']}")
    if summary.get("raw"):
        print(f"    raw: {summary['raw']}")


def _fail(message: str) -> int:
    print(f"ERROR: {message}", file=sys.stderr)
    return 1


# ----------------------------
# Commands
# ----------------------------

def cmd_login(args, client, auth, cfg) -> int:
    import getpass
    password = args.password or getpass.getpass("Password: ")
    result = sign_in(client, auth, args.username, password)
    print(result["message"])
    return 0 if result["ok"] else 1


def cmd_logout(args, client, auth, cfg) -> int:
    print(sign_out(auth)["message"])
    return 0


def cmd_register(args, client, auth, cfg) -> int:
    import getpass
    password = args.password or getpass.getpass("Password: ")
    result = sign_up(client, args.name, args.username, password)
    print(result["message"])
    return 0 if result["ok"] else 1


def cmd_whoami(args, client, auth, cfg) -> int:
    if args.set_points is not None:
        result = adjust_points(client, auth, args.set_points)
        print(result["message"])
        if not result["ok"]:
            return 1
    view = load_mypage(client, auth)
    if view["error"]:
        return _fail(view["error"])
    print(f"{view['display_name']} 님")
    print(f"  current points: {view['current_points']}P")
    print(f"  total earned:   {view['total_earned_points']}P")
    print(f"  total used:     {view['total_used_points']}P")
    return 0


def cmd_markers(args, client, auth, cfg) -> int:
    view = load_home(client, auth, cfg)
    if view["error"]:
        return _fail(view["error"])
    if view["username"]:
        print(f"Hello, {view['username']}!")
    print(f"{len(view['markers'])} active marker(s)")
    for m in view["markers"]:
        print_marker(m)
    return 0


def cmd_report(args, client, auth, cfg) -> int:
    result = submit_report(client, auth, args.lat, args.lng, args.description, args.images)
    print(result["message"])
    return 0 if result["ok"] else 1


def cmd_upload(args, client, auth, cfg) -> int:
    outcome = submit_cleanup(client, auth, cfg, args.marker_id, args.images, show_progress=not args.quiet)
    print(f"status: {outcome['status']}")
    if outcome["result"]:
        print(f"result: {outcome['result']}")
    print_summary(outcome)
    print(outcome["message"])
    return 0 if outcome["status"] == "COMPLETED" else 1


def cmd_status(args, client, auth, cfg) -> int:
    view = load_upload_page(client, auth, cfg, args.marker_id)
    if view["error"]:
        return _fail(view["error"])
    print_marker(view["marker"])
    print(f"    verification: {view['status']}" + (f" ({view['result']})" if view["result"] else ""))
    print_summary(view)
    return 0


def cmd_history(args, client, auth, cfg) -> int:
    if args.kind == "reports":
        view = load_report_history(client, auth, cfg)
        if view["error"]:
            return _fail(view["error"])
        print(f"{view['count']} report(s)")
        for m in view["reports"]:
            print_marker(m)
        return 0

    view = load_verification_history(client, auth, cfg)
    if view["error"]:
        return _fail(view["error"])
    print(f"{view['count']} cleanup(s) completed")
    for v in view["verifications"]:
        print_marker(v)
        print(f"    reward: {v['points_label']}")
        print_summary(v)
    return 0


def cmd_delete_report(args, client, auth, cfg) -> int:
    if not args.yes:
        answer = input(f"Delete report #{args.marker_id}? Deleted reports cannot be restored. (y/n): ").strip().lower()
        if not answer.startswith("y"):
            print("Cancelled.")
            return 0
    result = delete_report(client, auth, args.marker_id)
    print(result["message"])
    return 0 if result["ok"] else 1


def cmd_points(args, client, auth, cfg) -> int:
    view = load_point_exchange(client, auth, cfg, page=args.page)
    if view["error"]:
        print(f"WARNING: {view['error']}", file=sys.stderr)
    print(f"{view['display_name']} 님")
    print(f"  points: {view['current_points']}P  exchangeable: {view['available_points']}P")
    print(f"  history (page {view['page']}/{view['total_pages']}):")
    for row in view["history"]:
        print(f"    {row['date']}  {row['points']:>6}P  {row['type_label']}  {row['description']}")
    return 0


def cmd_exchange(args, client, auth, cfg) -> int:
    result = redeem(client, auth, cfg)
    print(result["message"])
    return 0 if result["ok"] else 1


def cmd_pins(args, client, auth, cfg) -> int:
    view = load_my_pins(client, auth, cfg)
    if view["error"]:
        return _fail(view["error"])
    print(f"{len(view['pins'])} PIN(s)")
    for p in view["pins"]:
        print(f"  {p['pin']}  {p['reward_type']}  {p['points_used']}P  issued {p['issued']}  expires {p['expires']}  [{p['state']}]")
    return 0


def cmd_parse(args, client, auth, cfg) -> int:
    if args.file and args.file != "-":
        with open(args.file, "r", encoding="utf-8") as f:
            text = f.read()
    else:
        text = sys.stdin.read()
    print(json.dumps(extract_verification_summary(text).as_dict(), ensure_ascii=False, indent=2))
    return 0


def cmd_web(args, client, auth, cfg) -> int:
    import uvicorn
    from hamkae.web.server import create_app

    host = args.host or cfg["web"]["host"]
    port = args.port or int(cfg["web"]["port"])
    print(f"Starting Hamkae Web UI at http://{host}:{port}")
    uvicorn.run(create_app(cfg=cfg, client=client, auth=auth), host=host, port=port, log_level="info")
    return 0


# ----------------------------
# Entry point
# ----------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hamkae litter-report client")
    parser.add_argument("--config", type=str, default="config.yaml", help="Path to config.yaml")
    parser.add_argument("--verbose", action="store_true", help="Log API traffic (DEBUG level).")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Log in and cache the token.")
    p.add_argument("username")
    p.add_argument("--password", default=None)
    p.set_defaults(func=cmd_login)

    p = sub.add_parser("logout", help="Forget the cached login.")
    p.set_defaults(func=cmd_logout)

    p = sub.add_parser("register", help="Create an account.")
    p.add_argument("name")
    p.add_argument("username")
    p.add_argument("--password", default=None)
    p.set_defaults(func=cmd_register)

    p = sub.add_parser("whoami", help="Profile and point balance (My page).")
    p.add_argument("--set-points", type=int, default=None, help="Test helper: overwrite the point balance.")
    p.set_defaults(func=cmd_whoami)

    p = sub.add_parser("markers", help="List active litter markers.")
    p.set_defaults(func=cmd_markers)

    p = sub.add_parser("report", help="Report a litter location with photos.")
    p.add_argument("--lat", required=True)
    p.add_argument("--lng", required=True)
    p.add_argument("--description", required=True)
    p.add_argument("images", nargs="*")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("upload", help="Upload cleanup photos and run AI verification.")
    p.add_argument("marker_id", type=int)
    p.add_argument("images", nargs="+")
    p.add_argument("--quiet", action="store_true", help="No progress bar.")
    p.set_defaults(func=cmd_upload)

    p = sub.add_parser("status", help="Show a marker and its verification status.")
    p.add_argument("marker_id", type=int)
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("history", help="My reports or my verified cleanups.")
    p.add_argument("kind", choices=["reports", "verifications"])
    p.set_defaults(func=cmd_history)

    p = sub.add_parser("delete-report", help="Delete one of my reports.")
    p.add_argument("marker_id", type=int)
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation.")
    p.set_defaults(func=cmd_delete_report)

    p = sub.add_parser("points", help="Point balance and history.")
    p.add_argument("--page", type=int, default=1)
    p.set_defaults(func=cmd_points)

    p = sub.add_parser("exchange", help="Exchange points for a gift voucher PIN.")
    p.set_defaults(func=cmd_exchange)

    p = sub.add_parser("pins", help="List issued voucher PINs.")
    p.set_defaults(func=cmd_pins)

    p = sub.add_parser("parse", help="Summarize an AI verification response (file or stdin).")
    p.add_argument("file", nargs="?", default="-")
    p.set_defaults(func=cmd_parse)

    p = sub.add_parser("web", help="Start the local web UI.")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)
    p.set_defaults(func=cmd_web)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = load_config(args.config)
    configure_logging("DEBUG" if args.verbose else cfg["logging"]["level"], cfg["logging"]["file"])

    auth = auth_from_config(cfg)
    client = client_from_config(cfg, auth)

    try:
        return args.func(args, client, auth, cfg)
    except LoginRequired:
        return _fail("You are not logged in. Run: hamkae login <username>")
    except ApiError as e:
        log.error(f"{args.command} failed: {e}")
        return _fail(user_message(e))


if __name__ == "__main__":
    sys.exit(main())
