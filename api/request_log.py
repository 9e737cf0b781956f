"""Access log: one line per request with method, path, status and duration."""
import logging
import time

from flask import g, request

logger = logging.getLogger("api.access")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def register_request_logging(app):
    @app.before_request
    def _start_timer():
        g._request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("_request_started")
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        logger.info(
            "%s %s status=%s duration_ms=%.1f remote_ip=%s user_agent=%s",
            request.method,
            request.path,
            response.status_code,
            duration_ms,
            request.remote_addr,
            request.user_agent.string,
        )
        return response
