# hamkae/views/account.py
from hamkae.api.users import login, register
from hamkae.tools.api_client import ApiClient, ApiError
from hamkae.tools.auth import AuthSession
from hamkae.tools.logger import get_logger

log = get_logger("account")


def sign_in(client: ApiClient, auth: AuthSession, username: str, password: str) -> dict:
    username = (username or "").strip()
    if not username or not password:
        return {"ok": False, "message": "Enter your username and password."}
    auth.loading = True
    try:
        result = login(client, username, password)
    except ApiError as e:
        log.warning(f"Login failed for {username}: {e}")
        if e.status in (400, 401):
            return {"ok": False, "message": "Incorrect username or password."}
        return {"ok": False, "message": e.message or "Login failed."}
    finally:
        auth.loading = False

    # The login form's username is what the rest of the UI greets the user with.
    auth.login(result.token, username)
    return {"ok": True, "message": f"Logged in as {username}.", "points": result.user.points}


def sign_up(client: ApiClient, name: str, username: str, password: str) -> dict:
    if not (name or "").strip() or not (username or "").strip() or not password:
        return {"ok": False, "message": "Name, username and password are all required."}
    try:
        register(client, name.strip(), username.strip(), password)
    except ApiError as e:
        log.warning(f"Registration failed for {username}: {e}")
        return {"ok": False, "message": e.message or "Registration failed."}
    return {"ok": True, "message": "Account created. You can log in now."}


def sign_out(auth: AuthSession) -> dict:
    auth.logout()
    return {"ok": True, "message": "Logged out."}
