import copy
import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest


def pytest_configure() -> None:
    # Ensure `import hamkae...` works without installing the package.
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


def make_response(status: int = 200, body=None):
    resp = MagicMock()
    resp.status_code = status
    if body is None:
        resp.content = b""
        resp.json.side_effect = ValueError("no body")
        resp.text = ""
    elif isinstance(body, str):
        resp.content = body.encode("utf-8")
        resp.json.side_effect = ValueError("not json")
        resp.text = body
    else:
        resp.content = json.dumps(body).encode("utf-8")
        resp.json.return_value = body
        resp.text = json.dumps(body)
    return resp


class FakeSession:
    """
    Stands in for requests.Session. Routes map (METHOD, path) to a body, a
    (status, body) pair, or an exception instance to raise.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def request(self, method, url, **kwargs):
        path = url.split("://", 1)[-1]
        path = "/" + path.split("/", 1)[1] if "/" in path else "/"
        self.calls.append({"method": method, "path": path, **kwargs})
        if (method, path) not in self.routes:
            return make_response(404, {"message": f"no route {method} {path}"})
        result = self.routes[(method, path)]
        if isinstance(result, Exception):
            raise result
        if isinstance(result, tuple):
            return make_response(*result)
        return make_response(200, result)

    def paths(self, method=None):
        return [c["path"] for c in self.calls if method is None or c["method"] == method]


@pytest.fixture
def cfg(tmp_path):
    from hamkae.main import DEFAULT_CONFIG
    data = copy.deepcopy(DEFAULT_CONFIG)
    data["api"]["base_url"] = "http://api.test"
    data["api"]["image_base_url"] = "http://img.test"
    data["auth"]["storage_path"] = str(tmp_path / "store" / "auth.json")
    return data


@pytest.fixture
def auth(cfg):
    from hamkae.tools.auth import auth_from_config
    return auth_from_config(cfg)


@pytest.fixture
def logged_in(auth):
    auth.login("token-abc", "tester")
    return auth


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(cfg, auth, session):
    from hamkae.tools.api_client import ApiClient
    return ApiClient(
        base_url=cfg["api"]["base_url"],
        auth=auth,
        timeout_sec=5,
        max_retries=2,
        image_base_url=cfg["api"]["image_base_url"],
        session=session,
    )
