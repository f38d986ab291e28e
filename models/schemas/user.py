from marshmallow import Schema, fields, pre_load, validate


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class NormalizeEmailMixin:
    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class RegisterSchema(NormalizeEmailMixin, Schema):
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=8, max=128))
    name = fields.String(validate=validate.Length(min=2, max=100))


class LoginSchema(NormalizeEmailMixin, Schema):
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class RefreshSchema(Schema):
    refresh_token = fields.String(required=True, data_key="refreshToken", validate=validate.Length(min=1))


class UserUpdateSchema(NormalizeEmailMixin, Schema):
    name = fields.String(validate=validate.Length(min=2, max=100))
    email = fields.Email(validate=validate.Length(max=255))


class UserOutSchema(Schema):
    id = fields.String()
    email = fields.String()
    name = fields.String(allow_none=True)
    is_active = fields.Boolean(data_key="isActive")
    is_verified = fields.Boolean(data_key="isVerified")
    blocked_at = fields.DateTime(data_key="blockedAt", allow_none=True)
    last_login_at = fields.DateTime(data_key="lastLoginAt", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
    roles = fields.Method("get_roles")
    permissions = fields.Method("get_permissions")

    def get_roles(self, obj):
        return sorted(obj.role_names)

    def get_permissions(self, obj):
        return sorted(obj.permission_names)


class TokenPairSchema(Schema):
    access_token = fields.String(data_key="accessToken")
    refresh_token = fields.String(data_key="refreshToken")
    token_type = fields.String(data_key="tokenType")
    expires_in = fields.Integer(data_key="expiresIn")
