"""Flask application exposing the log service over HTTP."""

import json
import logging
import os

from flask import Flask, Response, jsonify, request, send_from_directory

from tasklog.config import Config
from tasklog.errors import ConcurrencyError, LogNotFoundError, StoreError, ValidationError
from tasklog.locking import create_lock_manager
from tasklog.service import LogService
from tasklog.store import LogFileStore

logger = logging.getLogger(__name__)


def _reject_constant(name):
    raise ValueError(f"non-standard JSON constant {name}")


def parse_entry(raw: bytes):
    """Decode a request body strictly: NaN and Infinity are not JSON."""
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except ValueError as e:
        raise ValidationError([f"Request body is not valid JSON: {e}"]) from e


def build_service(config: Config) -> LogService:
    locks = create_lock_manager(
        config.lock_backend,
        retry_wait=config.lock_retry_wait_seconds,
        max_wait=config.lock_retry_max_wait_seconds,
    )
    return LogService(
        LogFileStore(config.log_file),
        locks,
        max_retries=config.lock_retries,
        backup_corrupt=config.backup_corrupt,
    )


def create_app(config: Config | None = None, service: LogService | None = None) -> Flask:
    """Flask application factory."""
    if config is None:
        config = Config()
    if service is None:
        service = build_service(config)

    public_dir = os.path.abspath(config.public_dir)
    app = Flask(__name__, static_folder=public_dir, static_url_path="")
    app.config["MAX_CONTENT_LENGTH"] = config.max_body_bytes
    app.config["components"] = {"config": config, "service": service}

    @app.route("/")
    def index():
        return send_from_directory(public_dir, "index.html")

    @app.route("/health")
    def health():
        try:
            stats = service.stats()
        except StoreError as e:
            return jsonify(status="error", error=str(e)), 500
        return jsonify(status="ok", **stats)

    @app.route("/save-log", methods=["POST"])
    def save_log():
        try:
            service.append(parse_entry(request.get_data()))
        except ValidationError as e:
            return jsonify(error="Invalid log entry data received.", details=e.errors), 400
        except ConcurrencyError:
            return jsonify(error="Log is busy, please retry."), 500
        except StoreError:
            return jsonify(error="Error saving log entry."), 500
        return jsonify(message="Log saved")

    @app.route("/load-log")
    def load_log():
        try:
            entries = service.list_all()
        except StoreError as e:
            logger.error("Error loading log file: %s", e)
            return jsonify(error="Error loading log data."), 500
        return jsonify(entries)

    @app.route("/log.csv")
    def export_csv():
        try:
            body = service.export_csv()
        except LogNotFoundError:
            return Response("Log file not found", status=404, mimetype="text/plain")
        except StoreError as e:
            logger.error("Error generating CSV: %s", e)
            return jsonify(error="Error generating CSV."), 500
        return Response(
            body,
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=log.csv"},
        )

    @app.route("/clear-log", methods=["POST"])
    def clear_log():
        try:
            service.clear()
        except (ConcurrencyError, StoreError):
            return jsonify(error="Error clearing log file."), 500
        return jsonify(message="Log cleared successfully.")

    return app
