# hamkae/web/server.py
"""
FastAPI web UI for the Hamkae litter-report client.

Serves the same pages as the mobile client (home map list, report, cleanup
upload with AI verification, report and verification history, my page, point
exchange) on top of the backend REST API. The login token is cached in the
local auth store, so one server process represents one signed-in user.

Run with: python -m hamkae.web.server
"""
import html
from pathlib import Path
from urllib.parse import quote

import markdown
from fastapi import FastAPI, File, Form, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from hamkae.tools.api_client import ApiClient, client_from_config
from hamkae.tools.auth import AuthSession, LoginRequired, auth_from_config
from hamkae.tools.json_extract import extract_verification_summary
from hamkae.tools.logger import get_logger
from hamkae.views.account import sign_in, sign_out, sign_up
from hamkae.views.exchange import load_my_pins, load_point_exchange, redeem
from hamkae.views.history import delete_report, load_report_history, load_verification_history
from hamkae.views.home import load_home
from hamkae.views.mypage import adjust_points, load_mypage
from hamkae.views.report import submit_report
from hamkae.views.upload import load_upload_page, submit_cleanup

log = get_logger("web")

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

WEB_DIR = Path(__file__).parent
TEMPLATES_DIR = WEB_DIR / "templates"


def render_markdown(text) -> str:
    """Markdown for AI response text. Raw HTML in the text is shown escaped."""
    return markdown.markdown(html.escape(text or "", quote=False), extensions=["tables", "fenced_code"])


def _redirect(url: str, message: str | None = None) -> RedirectResponse:
    if message:
        url += ("&" if "?" in url else "?") + "msg=" + quote(message)
    return RedirectResponse(url=url, status_code=303)


def _uploads(files: list[UploadFile] | None) -> list:
    """(filename, bytes) pairs for the non-empty files of a multipart form."""
    parts = []
    for f in files or []:
        if not f.filename:
            continue
        content = f.file.read()
        if content:
            parts.append((f.filename, content))
    return parts


def create_app(cfg: dict | None = None, client: ApiClient | None = None, auth: AuthSession | None = None) -> FastAPI:
    if cfg is None:
        from hamkae.main import load_config
        cfg = load_config()
    if auth is None:
        auth = auth_from_config(cfg)
    if client is None:
        client = client_from_config(cfg, auth)

    app = FastAPI(title="Hamkae")
    app.state.cfg = cfg
    app.state.client = client
    app.state.auth = auth

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.filters["markdown"] = render_markdown

    def page(request: Request, name: str, context: dict, status_code: int = 200):
        context = dict(context)
        context.setdefault("username", auth.username)
        context.setdefault("is_authenticated", auth.is_authenticated)
        context.setdefault("msg", request.query_params.get("msg"))
        return templates.TemplateResponse(request, name, context, status_code=status_code)

    @app.exception_handler(LoginRequired)
    async def login_required(request: Request, exc: LoginRequired):
        log.info(f"Login required for {request.url.path}")
        return _redirect("/login", "Please log in first.")

    # -----------------------------------------------------------------------
    # Public pages
    # -----------------------------------------------------------------------

    @app.get("/")
    def index():
        return _redirect("/home")

    @app.get("/home", response_class=HTMLResponse)
    def home(request: Request):
        """Active markers waiting for cleanup."""
        return page(request, "home.html", load_home(client, auth, cfg))

    @app.get("/login", response_class=HTMLResponse)
    def login_form(request: Request):
        if auth.is_authenticated:
            return _redirect("/home")
        return page(request, "login.html", {"error": None, "form_username": ""})

    @app.post("/login")
    def login_submit(request: Request, username: str = Form(""), password: str = Form("")):
        result = sign_in(client, auth, username, password)
        if not result["ok"]:
            return page(request, "login.html", {"error": result["message"], "form_username": username}, status_code=400)
        return _redirect("/home", result["message"])

    @app.post("/logout")
    def logout():
        return _redirect("/login", sign_out(auth)["message"])

    @app.get("/register", response_class=HTMLResponse)
    def register_form(request: Request):
        return page(request, "register.html", {"error": None, "form": {}})

    @app.post("/register")
    def register_submit(
        request: Request,
        name: str = Form(""),
        username: str = Form(""),
        password: str = Form(""),
    ):
        result = sign_up(client, name, username, password)
        if not result["ok"]:
            return page(
                request,
                "register.html",
                {"error": result["message"], "form": {"name": name, "username": username}},
                status_code=400,
            )
        return _redirect("/login", result["message"])

    # -----------------------------------------------------------------------
    # Report / cleanup
    # -----------------------------------------------------------------------

    @app.get("/report", response_class=HTMLResponse)
    def report_form(request: Request):
        auth.require()
        return page(request, "report.html", {"error": None, "form": {}})

    @app.post("/report")
    def report_submit(
        request: Request,
        lat: str = Form(""),
        lng: str = Form(""),
        description: str = Form(""),
        images: list[UploadFile] = File(default=[]),
    ):
        result = submit_report(client, auth, lat, lng, description, _uploads(images))
        if not result["ok"]:
            return page(
                request,
                "report.html",
                {"error": result["message"], "form": {"lat": lat, "lng": lng, "description": description}},
                status_code=400,
            )
        return _redirect("/report-history", result["message"])

    @app.get("/upload/{marker_id}", response_class=HTMLResponse)
    def upload_page(request: Request, marker_id: int):
        view = load_upload_page(client, auth, cfg, marker_id)
        return page(request, "upload.html", view, status_code=404 if view["marker"] is None else 200)

    @app.post("/upload/{marker_id}", response_class=HTMLResponse)
    def upload_submit(request: Request, marker_id: int, images: list[UploadFile] = File(default=[])):
        outcome = submit_cleanup(client, auth, cfg, marker_id, _uploads(images))
        view = load_upload_page(client, auth, cfg, marker_id)
        # The verification just returned is fresher than the status endpoint
        if outcome["status"] != "PENDING":
            view.update({k: outcome[k] for k in ("status", "result", "gpt_response", "summary", "confidence_bar")})
        view["outcome"] = outcome
        return page(request, "upload.html", view)

    # -----------------------------------------------------------------------
    # History
    # -----------------------------------------------------------------------

    @app.get("/report-history", response_class=HTMLResponse)
    def report_history(request: Request):
        return page(request, "report_history.html", load_report_history(client, auth, cfg))

    @app.post("/report-history/{marker_id}/delete")
    def report_delete(marker_id: int):
        return _redirect("/report-history", delete_report(client, auth, marker_id)["message"])

    @app.get("/verification-history", response_class=HTMLResponse)
    def verification_history(request: Request):
        return page(request, "verification_history.html", load_verification_history(client, auth, cfg))

    # -----------------------------------------------------------------------
    # Points
    # -----------------------------------------------------------------------

    @app.get("/mypage", response_class=HTMLResponse)
    def mypage(request: Request):
        return page(request, "mypage.html", load_mypage(client, auth))

    @app.post("/mypage/points")
    def mypage_points(points: str = Form("")):
        return _redirect("/mypage", adjust_points(client, auth, points)["message"])

    @app.get("/point-exchange", response_class=HTMLResponse)
    def point_exchange(request: Request, page_no: int = Query(1, alias="page")):
        return page(request, "point_exchange.html", load_point_exchange(client, auth, cfg, page=page_no))

    @app.post("/point-exchange")
    def point_exchange_submit():
        result = redeem(client, auth, cfg)
        return _redirect("/point-exchange", result["message"])

    @app.get("/my-pins", response_class=HTMLResponse)
    def my_pins(request: Request):
        return page(request, "my_pins.html", load_my_pins(client, auth, cfg))

    # -----------------------------------------------------------------------
    # JSON
    # -----------------------------------------------------------------------

    @app.post("/api/parse-gpt")
    async def parse_gpt(request: Request):
        """Summarize a raw AI verification response: {"text": "..."} -> summary fields."""
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse({"error": "Body must be JSON"}, status_code=400)
        text = body.get("text") if isinstance(body, dict) else body
        return extract_verification_summary(text).as_dict()

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    import uvicorn
    from hamkae.main import load_config

    cfg = load_config()
    host, port = cfg["web"]["host"], int(cfg["web"]["port"])
    print(f"Starting Hamkae Web UI at http://{host}:{port}")
    uvicorn.run(create_app(cfg=cfg), host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
