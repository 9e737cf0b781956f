from marshmallow import Schema, fields


class RefreshRequestSchema(Schema):
    # the cookie takes precedence; the body is for clients without cookies
    refresh_token = fields.String(load_default=None)


class TokenPairOutSchema(Schema):
    access_token = fields.String()
    refresh_token = fields.String()
    token_type = fields.Constant("bearer")
    expires_in = fields.Integer()
