from __future__ import annotations
from typing import Any, Optional

from flask import current_app, jsonify, request
from pydantic import ValidationError

from clock import Clock
from config import BookingConfig
from errors import DomainError

ACTOR_HEADER = "X-Actor-Id"


def current_booking_config() -> BookingConfig:
    return current_app.extensions["booking"]


def current_clock() -> Clock:
    return current_app.extensions["clock"]


def actor_id() -> Optional[int]:
    """Id пользователя, выставленный внешним слоем авторизации."""
    raw = request.headers.get(ACTOR_HEADER, "").strip()
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def ok(data: Any, status: int = 200):
    return jsonify(data), status


def error(code: str, message: str, status: int, details: Any = None):
    return jsonify({"ok": False, "error": {"code": code, "message": message, "details": details or {}}}), status


def domain_error(err: DomainError):
    body = err.to_dict()
    return jsonify({"ok": False, "error": body}), err.http_status


def bad_request(e: ValidationError):
    return error("BAD_REQUEST", "invalid request body", 400,
                 {"errors": e.errors(include_url=False, include_context=False, include_input=False)})


def unauthenticated():
    return error("UNAUTHENTICATED", f"missing or invalid {ACTOR_HEADER} header", 401)
