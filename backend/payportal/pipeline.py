# Overview: Ordered request/response stages applied to every request.

"""
Request Pipeline

Every request passes the stages below in order; every response passes the
response stages in order. The order is fixed once in create_app.

    1. screen_markup          (request)  reject bodies carrying markup-injection markers
    2. require_json_object    (request)  write methods on /api must send a JSON object
    3. add_security_headers   (response) CSP, frame denial, HSTS, no sniffing, no referrer
    4. add_cors_headers       (response) allow-listed origins only

A request stage returns None to continue or a response to stop the request.
A response stage takes and returns the response.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from flask import current_app, request

from .responses import error_response


API_PREFIX = "/api"
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH"})

MARKUP_RE = re.compile(r"<script|javascript:|onerror\s*=|onclick\s*=|<iframe", re.IGNORECASE)

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "no-referrer",
}

CORS_ALLOWED_METHODS = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
CORS_ALLOWED_HEADERS = "Authorization, Content-Type"

REQUEST = "request"
RESPONSE = "response"


@dataclass(frozen=True)
class Stage:
    name: str
    phase: str
    func: Callable


def _has_body() -> bool:
    return bool(request.content_length) or bool(request.get_data(cache=True))


def screen_markup():
    if not request.is_json or not _has_body():
        return None
    body = request.get_data(cache=True, as_text=True)
    if MARKUP_RE.search(body):
        current_app.logger.warning(
            "Rejected request with markup in body: %s %s from %s",
            request.method, request.path, request.remote_addr,
        )
        return error_response("Potentially malicious input detected", 400)
    return None


def require_json_object():
    if request.method not in WRITE_METHODS or not request.path.startswith(API_PREFIX):
        return None
    if not _has_body():
        return None
    if not request.is_json:
        return error_response("Content-Type must be application/json", 400)
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return error_response("Invalid JSON payload", 400)
    return None


def add_security_headers(response):
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


def add_cors_headers(response):
    origin = request.headers.get("Origin")
    if origin and origin in current_app.config.get("CORS_ALLOWED_ORIGINS", ()):
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Headers"] = CORS_ALLOWED_HEADERS
        response.headers["Access-Control-Allow-Methods"] = CORS_ALLOWED_METHODS
    return response


DEFAULT_STAGES = (
    Stage("screen_markup", REQUEST, screen_markup),
    Stage("require_json_object", REQUEST, require_json_object),
    Stage("add_security_headers", RESPONSE, add_security_headers),
    Stage("add_cors_headers", RESPONSE, add_cors_headers),
)


def install_pipeline(app, stages=DEFAULT_STAGES) -> None:
    """Register one before/after hook pair that runs the stages in order."""
    request_stages = tuple(s for s in stages if s.phase == REQUEST)
    response_stages = tuple(s for s in stages if s.phase == RESPONSE)
    app.extensions["pipeline"] = tuple(stages)

    @app.before_request
    def run_request_stages():
        for stage in request_stages:
            result = stage.func()
            if result is not None:
                return result
        return None

    @app.after_request
    def run_response_stages(response):
        for stage in response_stages:
            response = stage.func(response)
        return response
