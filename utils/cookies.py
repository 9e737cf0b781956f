from flask import current_app, request


def refresh_cookie_name() -> str:
    return current_app.config["REFRESH_COOKIE_NAME"]


def read_refresh_cookie():
    return request.cookies.get(refresh_cookie_name())


def set_refresh_cookie(response, token: str):
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        token,
        max_age=int(cfg["REFRESH_TOKEN_TTL"].total_seconds()),
        httponly=True,
        secure=cfg["REFRESH_COOKIE_SECURE"],
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
        path=cfg["REFRESH_COOKIE_PATH"],
    )
    return response


def clear_refresh_cookie(response):
    cfg = current_app.config
    response.delete_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        path=cfg["REFRESH_COOKIE_PATH"],
        httponly=True,
        secure=cfg["REFRESH_COOKIE_SECURE"],
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )
    return response
