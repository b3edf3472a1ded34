"""Flask application exposing the partitioned log store over HTTP."""

import logging

from flask import Flask, Response, jsonify, request, send_file
from werkzeug.exceptions import HTTPException

from daylog.archive import ArchiveExporter
from daylog.catalog import PartitionCatalog
from daylog.config import Config
from daylog.errors import DaylogError
from daylog.formatter import format_timestamp
from daylog.retention import RetentionEngine
from daylog.writer import PartitionWriter

logger = logging.getLogger(__name__)

SERVICE_NAME = "Daylog Server"
CORS_METHODS = "GET, POST, DELETE, OPTIONS"

API_INDEX = [
    {"method": "POST", "path": "/api/log", "description": "Write a log entry",
     "body": {
         "message": "string (required)",
         "date": "string (optional, any parseable date, default: today)",
         "level": "string (optional, DEBUG|INFO|WARN|ERROR|FATAL, default: INFO)",
         "component": "string (optional, default: Application)",
         "platform": "string (optional, default: Nodejs)",
     }},
    {"method": "POST", "path": "/api/logs/batch",
     "description": "Write up to 1000 log entries at once",
     "body": {"logs": "array (required) of objects shaped like /api/log bodies"}},
    {"method": "GET", "path": "/api/log/download/<date>",
     "description": "Download the log file for a day", "params": {"date": "YYYY-MM-DD"}},
    {"method": "GET", "path": "/api/log/<date>",
     "description": "Read the log lines for a day", "params": {"date": "YYYY-MM-DD"}},
    {"method": "GET", "path": "/api/logs", "description": "List available log files"},
    {"method": "GET", "path": "/api/logs/download-all",
     "description": "Download every log file as a ZIP archive"},
    {"method": "POST", "path": "/api/logs/cleanup",
     "description": "Delete log files older than the retention window"},
    {"method": "DELETE", "path": "/api/log/<date>",
     "description": "Delete the log file for a day", "params": {"date": "YYYY-MM-DD"}},
]


def build_components(config: Config, time_func=None) -> dict:
    """Wire the storage engine from configuration."""
    logs_dir = config["storage"]["logs_dir"]
    writer = PartitionWriter(
        logs_dir,
        time_func=time_func,
        max_batch_size=config["batch"]["max_size"],
    )
    catalog = PartitionCatalog(logs_dir, writer=writer)
    retention = RetentionEngine(
        catalog,
        writer,
        retention_days=config["retention"]["days"],
    )
    exporter = ArchiveExporter(
        catalog,
        time_func=writer.now,
        compresslevel=config["archive"]["compresslevel"],
    )
    return {
        "config": config,
        "writer": writer,
        "catalog": catalog,
        "retention": retention,
        "exporter": exporter,
    }


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def create_app(config=None, time_func=None):
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = Config()

    components = build_components(config, time_func=time_func)
    app.config["components"] = components

    writer: PartitionWriter = components["writer"]
    catalog: PartitionCatalog = components["catalog"]
    retention: RetentionEngine = components["retention"]
    exporter: ArchiveExporter = components["exporter"]

    def _timestamp():
        return format_timestamp(writer.now())

    @app.errorhandler(DaylogError)
    def handle_daylog_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(OSError)
    def handle_os_error(e):
        logger.exception("Filesystem error on %s %s", request.method, request.path)
        return jsonify({"success": False, "error": "Log storage error", "message": str(e)}), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"success": False, "error": "Internal server error", "message": str(e)}), 500

    cors_origin = config["server"]["cors_origin"]

    @app.after_request
    def add_cors_headers(response):
        if cors_origin:
            response.headers["Access-Control-Allow-Origin"] = cors_origin
            response.headers["Access-Control-Allow-Methods"] = CORS_METHODS
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    # --- Routes ---

    @app.route("/")
    def index():
        return jsonify({"message": SERVICE_NAME, "apis": API_INDEX})

    @app.route("/health")
    def health():
        return jsonify({
            "status": "healthy",
            "logs_dir": str(catalog.root),
            "partitions": len(catalog.list_partitions()),
        })

    @app.route("/api/log", methods=["POST"])
    def write_log():
        receipt = writer.append_one(_json_body())
        return jsonify({
            "success": True,
            "message": "Log written successfully",
            "file": receipt.filename,
            "timestamp": receipt.timestamp,
            "level": receipt.level,
            "component": receipt.component,
            "platform": receipt.platform,
        })

    @app.route("/api/logs/batch", methods=["POST"])
    def write_batch():
        result = writer.append_batch(_json_body().get("logs"))
        return jsonify({
            "success": result.ok,
            "message": (
                f"Batch log completed: {result.successful}/{result.total} "
                "logs written successfully"
            ),
            "results": result.to_dict(),
        }), (200 if result.ok else 207)

    @app.route("/api/log/download/<date>")
    def download_log(date):
        path = catalog.partition_file(date)
        return send_file(
            path,
            mimetype="text/plain",
            as_attachment=True,
            download_name=path.name,
        )

    @app.route("/api/log/<date>", methods=["GET"])
    def read_log(date):
        lines = catalog.read_partition(date)
        return jsonify({
            "success": True,
            "date": date,
            "file": catalog.partition_path(date).name,
            "content": lines,
            "total_lines": len(lines),
        })

    @app.route("/api/logs")
    def list_logs():
        return jsonify({
            "success": True,
            "logs": [p.to_dict() for p in catalog.list_partitions()],
        })

    @app.route("/api/logs/download-all")
    def download_all():
        stream = exporter.export_all()
        return Response(
            stream.chunks,
            mimetype="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{stream.filename}"'},
        )

    @app.route("/api/logs/cleanup", methods=["POST"])
    def cleanup():
        logger.info("Manual cleanup triggered via API")
        try:
            result = retention.cleanup()
        except Exception as e:
            return jsonify({
                "success": False,
                "error": "Log cleanup failed",
                "message": str(e),
            }), 500

        return jsonify({
            "success": True,
            "message": "Log cleanup completed successfully",
            "results": {
                "deleted": result.deleted,
                "kept": result.kept,
                "errors": len(result.errors),
                "deleted_files": result.deleted_files,
                "kept_files": result.kept_files,
                "timestamp": _timestamp(),
            },
        })

    @app.route("/api/log/<date>", methods=["DELETE"])
    def delete_log(date):
        filename = catalog.delete_partition(date)
        return jsonify({
            "success": True,
            "message": f"Log file for {date} deleted successfully",
            "deleted_file": filename,
            "date": date,
            "timestamp": _timestamp(),
        })

    return app
