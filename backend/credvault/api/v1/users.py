"""User session endpoints: register, login, logout, refresh, password, whoami."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from credvault.api.cookies import clear_token_cookies, read_refresh_cookie, set_token_cookies
from credvault.api.deps import (
    build_session_service,
    current_user_id,
    json_response,
    require_auth,
    save_upload,
    timing,
)
from credvault.schemas import (
    ChangePasswordSchema,
    LoginSchema,
    RefreshSchema,
    RegisterSchema,
    TokenPairSchema,
    UserSchema,
)
from credvault.services._shared.errors import AuthError, NotFoundError
from credvault.services.session import ChangePasswordIn, LoginIn, RefreshIn, RegisterIn

bp = Blueprint("users", __name__, url_prefix="/users")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
change_password_schema = ChangePasswordSchema()
token_schema = TokenPairSchema()
user_schema = UserSchema()


@bp.post("/register")
@timing
def register():
    """Create an account from multipart fields plus ``avatar``/``coverImage`` files."""

    form = register_schema.load(request.form.to_dict())
    dto = RegisterIn(
        full_name=form["full_name"],
        email=form["email"],
        username=form["username"],
        password=form["password"],
        avatar=save_upload("avatar"),
        cover_image=save_upload("coverImage"),
    )
    user = build_session_service().register(dto)
    body = {"data": user_schema.dump(user), "message": "User registered successfully"}
    return json_response(body, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate by username or email and start a new session."""

    data = login_schema.load(request.get_json(silent=True) or {})
    service = build_session_service()
    try:
        result = service.login(LoginIn(**data))
    except NotFoundError as exc:
        if current_app.config.get("AUTH_HIDE_UNKNOWN_ACCOUNTS", True):
            raise AuthError("Invalid user credentials") from exc
        raise

    body = {
        "data": {
            "user": user_schema.dump(result.user),
            **token_schema.dump(result),
        },
        "message": "User logged in successfully",
    }
    response = json_response(body)
    set_token_cookies(response, result.access_token, result.refresh_token)
    return response


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Clear the stored refresh token and the token cookies."""

    build_session_service().logout(current_user_id())
    response = json_response({"data": {}, "message": "User logged out"})
    clear_token_cookies(response)
    return response


@bp.post("/refresh-token")
@timing
def refresh_token():
    """Rotate the token pair; the refresh cookie wins over the JSON body."""

    token = read_refresh_cookie()
    if token is None:
        token = refresh_schema.load(request.get_json(silent=True) or {})["refresh_token"]
    pair = build_session_service().refresh(RefreshIn(refresh_token=token))
    response = json_response(
        {"data": token_schema.dump(pair), "message": "Access token refreshed"}
    )
    set_token_cookies(response, pair.access_token, pair.refresh_token)
    return response


@bp.post("/change-password")
@require_auth
@timing
def change_password():
    data = change_password_schema.load(request.get_json(silent=True) or {})
    build_session_service().change_password(
        ChangePasswordIn(
            user_id=current_user_id(),
            old_password=data["old_password"],
            new_password=data["new_password"],
        )
    )
    return json_response({"data": {}, "message": "Password changed successfully"})


@bp.get("/current-user")
@require_auth
@timing
def current_user():
    user = build_session_service().get_current_user(current_user_id())
    return json_response(
        {"data": user_schema.dump(user), "message": "Current user fetched successfully"}
    )
