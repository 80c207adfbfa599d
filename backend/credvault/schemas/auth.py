"""Authentication-related Marshmallow schemas.

Presence of required values is checked by the session service (blank values
answer 400); these schemas only enforce types and sizes.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class RegisterSchema(Schema):
    """Multipart form fields for account registration (files are read separately)."""

    class Meta:
        unknown = EXCLUDE

    full_name = fields.String(data_key="fullName", load_default="", validate=validate.Length(max=100))
    email = fields.String(load_default="", validate=validate.Length(max=254))
    username = fields.String(load_default="", validate=validate.Length(max=50))
    password = fields.String(load_default="", validate=validate.Length(max=128))


class LoginSchema(Schema):
    """Input payload for authenticating a user by username or email."""

    username = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=50))
    email = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=254))
    password = fields.String(load_default="", validate=validate.Length(max=128))


class RefreshSchema(Schema):
    """Optional JSON body carrying the refresh token when no cookie is sent."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(data_key="refreshToken", load_default=None, allow_none=True)


class ChangePasswordSchema(Schema):
    """Input payload for changing the authenticated user's password."""

    old_password = fields.String(data_key="oldPassword", load_default="")
    new_password = fields.String(
        data_key="newPassword", load_default="", validate=validate.Length(max=128)
    )


class TokenPairSchema(Schema):
    """Response payload containing an access/refresh token pair."""

    access_token = fields.String(data_key="accessToken", required=True)
    refresh_token = fields.String(data_key="refreshToken", required=True)
