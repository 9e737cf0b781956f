from flask import Blueprint, current_app

bp = Blueprint("health", __name__)

VERSION = "1.0.0"


@bp.get("/health")
def health():
    """
    Liveness check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
            storage:
              type: string
              example: sql
    """
    return {
        "status": "ok",
        "version": VERSION,
        "storage": current_app.config["STORAGE_BACKEND"],
    }, 200
