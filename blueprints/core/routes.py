from __future__ import annotations
import json, logging
from datetime import datetime
from uuid import uuid4

from flask import g, jsonify, request
from flask.wrappers import Response

from errors import ConfigurationError
from . import bp

# стандартные поля LogRecord; всё остальное пришло через extra=
_RECORD_FIELDS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.utcnow().isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_FIELDS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _setup_structured_logging(app):
    for logger in (app.logger, logging.getLogger("blueprints")):
        has_json = any(
            isinstance(h, logging.StreamHandler)
            and isinstance(getattr(h, "formatter", None), JSONFormatter)
            for h in logger.handlers
        )
        if not has_json:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)
            logger.setLevel(logging.INFO)


@bp.before_app_request
def _start_timer():
    g._req_start = datetime.utcnow()
    g.request_id = request.headers.get("X-Request-Id") or uuid4().hex


@bp.after_app_request
def _log_request(response: Response):
    start = getattr(g, "_req_start", None)
    duration_ms = int((datetime.utcnow() - start).total_seconds() * 1000) if start else None
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "request_id": getattr(g, "request_id", None),
    }
    logging.getLogger("blueprints.core").info("request handled", extra=extra)
    response.headers.setdefault("X-Request-Id", extra["request_id"] or "")
    return response


@bp.app_errorhandler(ConfigurationError)
def _configuration_error(e: ConfigurationError):
    logging.getLogger("blueprints.core").error("configuration error", extra={
        "event": "config_error", "path": request.path, "detail": str(e),
    })
    return jsonify({"ok": False, "error": {
        "code": e.code, "message": "service is misconfigured", "details": {"reason": str(e)},
    }}), e.http_status


@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)


@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": datetime.utcnow().isoformat(timespec="seconds") + "Z",
    })
