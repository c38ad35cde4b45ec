# hamkae/tools/api_client.py
import time
import requests
from requests.adapters import HTTPAdapter

from hamkae.tools.logger import get_logger, mask_token

DEFAULT_BASE_URL = "https://hamkae.sku-sku.com"
DEFAULT_FALLBACK_IMAGE = "/tresh.png"

# Only idempotent requests are retried on network failure.
RETRY_METHODS = ("GET", "DELETE")
BACKOFF_SEC = [2, 5, 10]

log = get_logger("api")


class ApiError(Exception):
    """HTTP error, failed envelope, or network failure (status is None)."""

    def __init__(self, message: str, status: int | None = None, url: str | None = None, payload=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.url = url
        self.payload = payload

    @property
    def is_network_error(self) -> bool:
        return self.status is None and self.url is not None


STATUS_MESSAGES = {
    400: "The request was rejected. Check the input and try again.",
    401: "Your login has expired. Please log in again.",
    404: "The requested item could not be found.",
    500: "The server hit an internal error. Please try again shortly.",
}


def user_message(err: Exception, fallback: str = "Something went wrong.") -> str:
    """User-facing text for an error raised by the client."""
    if isinstance(err, ApiError):
        if err.is_network_error:
            return "Could not reach the server. Check your connection and try again."
        if err.status in STATUS_MESSAGES:
            return STATUS_MESSAGES[err.status]
        if err.message:
            return err.message
    return fallback


def _is_envelope(body) -> bool:
    return isinstance(body, dict) and "success" in body and ("message" in body or "data" in body)


def unwrap(body):
    """
    The backend answers either with a {success, message, data} envelope or
    with the bare DTO. Return the payload in both cases; a failed envelope
    raises ApiError.
    """
    if _is_envelope(body):
        if body.get("success") is False:
            raise ApiError(body.get("message") or "Request failed", payload=body)
        return body.get("data")
    return body


def _decode_body(resp):
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _error_details(resp):
    body = _decode_body(resp)
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"]), body
    return f"HTTP {resp.status_code}", body


class ApiClient:
    """
    Thin wrapper over a requests.Session bound to the Hamkae REST API.
    Adds the bearer token from the auth session and logs every call.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        auth=None,
        timeout_sec: int = 30,
        max_retries: int = 2,
        image_base_url: str | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.image_base_url = (image_base_url or self.base_url).rstrip("/")
        self.auth = auth
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = "hamkae-client/0.1"
            session.mount("https://", HTTPAdapter(pool_connections=8, pool_maxsize=8))
            session.mount("http://", HTTPAdapter(pool_connections=4, pool_maxsize=4))
        self.session = session

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        token = self.auth.token if self.auth is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(self, method: str, path: str, *, params=None, json=None, data=None, files=None):
        method = method.upper()
        url = self.url_for(path)
        headers = self._headers()
        token = self.auth.token if self.auth is not None else None
        log.debug(f"API request: {method} {url} auth={mask_token(token)}")

        attempts = self.max_retries + 1 if method in RETRY_METHODS else 1
        for attempt in range(attempts):
            try:
                resp = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    data=data,
                    files=files,
                    headers=headers,
                    timeout=self.timeout_sec,
                )
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                if attempt + 1 < attempts:
                    # backoff: 2s, 5s, 10s
                    sleep_s = BACKOFF_SEC[min(attempt, 2)]
                    log.warning(f"Network error on {method} {url} (attempt {attempt+1}/{attempts}). Retrying in {sleep_s}s...")
                    time.sleep(sleep_s)
                    continue
                log.error(f"Network error on {method} {url}: {type(e).__name__}: {e}")
                log.error("Backend unreachable - check that the API server is running and HAMKAE_API_BASE_URL is correct")
                raise ApiError(f"Network error: {type(e).__name__}", url=url) from e
            return self._handle_response(method, url, resp)

    def _handle_response(self, method: str, url: str, resp):
        if resp.status_code >= 400:
            message, payload = _error_details(resp)
            log.error(f"API error: {method} {url} status={resp.status_code} message={message}")
            if resp.status_code == 401:
                log.error("Authentication failed - login required")
                if self.auth is not None:
                    self.auth.clear_token()
            raise ApiError(message, status=resp.status_code, url=url, payload=payload)

        body = _decode_body(resp)
        log.debug(f"API response: {method} {url} status={resp.status_code}")
        return body

    def get(self, path: str, **kwargs):
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs):
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs):
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs):
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs):
        return self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------
    # Image URLs
    # ------------------------------------------------------------------

    def image_url(self, image_path) -> str:
        if not image_path or not isinstance(image_path, str):
            return ""
        if image_path.startswith("http"):
            return image_path
        # uploaded photos are served by the image host under /images/
        if image_path.startswith("/images/"):
            return f"{self.image_base_url}{image_path}"
        # bundled static assets live at the image host root
        if image_path.startswith("/public/"):
            return f"{self.image_base_url}/{image_path[len('/public/'):]}"
        return f"{self.base_url}{image_path if image_path.startswith('/') else '/' + image_path}"

    def image_url_with_fallback(self, image_path, fallback: str = DEFAULT_FALLBACK_IMAGE) -> str:
        return self.image_url(image_path) or fallback


def client_from_config(cfg: dict, auth=None) -> ApiClient:
    api = cfg["api"]
    return ApiClient(
        base_url=api["base_url"],
        auth=auth,
        timeout_sec=int(api.get("timeout_sec", 30)),
        max_retries=int(api.get("max_retries", 2)),
        image_base_url=api.get("image_base_url"),
    )
