"""HTTP boundary: serve the spending model as JSON.

The handler is a thin shim over ``service.fetch_spending_data``; it only maps
the error taxonomy onto status codes and adds CORS headers for the dashboard.
"""

from __future__ import annotations

from typing import Callable

from flask import Flask, jsonify, request

from spend_sheet.config import DEFAULT_API_PATH, Settings, settings_from_env
from spend_sheet.errors import InsufficientData, NoValidMonths, UpstreamRateLimited
from spend_sheet.logging_setup import configure_logging, get_logger
from spend_sheet.service import fetch_spending_data
from spend_sheet.sources import GoogleSheetsSource, SheetSource

logger = get_logger("spend_sheet.server")

SourceFactory = Callable[[], SheetSource]


def google_source_factory(settings: Settings) -> SourceFactory:
    def build() -> SheetSource:
        return GoogleSheetsSource(
            settings.sheet_id or "",
            api_key=settings.api_key,
            access_token=settings.access_token,
            credentials=settings.credentials,
        )

    return build


def error_response(message: str, status: int, **extra):
    payload = {"error": message}
    payload.update(extra)
    return jsonify(payload), status


def create_app(settings: Settings | None = None, source_factory: SourceFactory | None = None) -> Flask:
    configure_logging()
    settings = settings or settings_from_env()
    source_factory = source_factory or google_source_factory(settings)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.config["SPEND_SHEET_SETTINGS"] = settings

    def spending_data():
        if request.method not in ("GET", "HEAD"):
            return error_response("Method not allowed", 405)
        try:
            model = fetch_spending_data(source_factory(), settings.layout)
        except NoValidMonths:
            return error_response("No valid month data found", 404)
        except InsufficientData:
            return error_response("No data found", 404)
        except UpstreamRateLimited as exc:
            return error_response("Rate limit exceeded", 429, retryAfter=exc.retry_after)
        except Exception:
            logger.exception("Error fetching spending data")
            return error_response("Failed to fetch spending data", 500)
        return jsonify(model.to_dict())

    methods = ["GET", "POST", "PUT", "PATCH", "DELETE"]
    app.add_url_rule(DEFAULT_API_PATH, "spending_data", spending_data, methods=methods)
    if settings.api_alias and settings.api_alias != DEFAULT_API_PATH:
        app.add_url_rule(settings.api_alias, "spending_data_alias", spending_data, methods=methods)

    @app.get("/healthz")
    def healthz():
        return jsonify({"status": "ok"})

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET"
        return response

    return app
