from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from models.schemas.user import UserOutSchema
from services.auth import AuthenticatedUser
from utils.decorators import roles_required

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()


@bp.get("/users/<user_id>")
@roles_required(["admin"])
def get_user(user_id: str):
    """
    Admin-only: fetch a user by id.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
    responses:
      200: { description: OK }
      403: { description: Insufficient role }
      404: { description: Not found }
    """
    # UserNotFound maps to 404
    user = current_app.extensions["auth_service"].users.find_by_id(user_id)
    return jsonify({"data": user_out_schema.dump(AuthenticatedUser.from_model(user))}), 200
