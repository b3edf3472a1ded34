"""End-to-end tests for the HTTP API through the Flask test client."""

import io
import json
import zipfile

from conftest import TODAY
from daylog.api import create_app


class TestIndexAndHealth:
    def test_index_lists_routes(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        paths = {api["path"] for api in resp.get_json()["apis"]}
        assert "/api/logs/batch" in paths
        assert "/api/logs/download-all" in paths

    def test_health(self, client, touch):
        touch("log-2025-01-10.txt")
        data = client.get("/health").get_json()
        assert data["status"] == "healthy"
        assert data["partitions"] == 1


class TestWriteLog:
    def test_write_defaults(self, client, logs_dir):
        resp = client.post("/api/log", json={"message": "User logged in"})

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["success"] is True
        assert data["file"] == f"log-{TODAY}.txt"
        assert data["timestamp"] == "15/01/2025 02:30:05 PM"
        assert data["level"] == "INFO"
        assert data["component"] == "Application"
        assert data["platform"] == "Nodejs"
        assert (logs_dir / f"log-{TODAY}.txt").exists()

    def test_write_with_fields(self, client):
        resp = client.post("/api/log", json={
            "message": "crash", "date": "2025-01-09", "level": "fatal",
            "component": "Worker", "platform": "Python",
        })
        data = resp.get_json()
        assert data["file"] == "log-2025-01-09.txt"
        assert data["level"] == "FATAL"
        assert data["component"] == "Worker"
        assert data["platform"] == "Python"

    def test_invalid_level_falls_back_to_info(self, client):
        data = client.post("/api/log", json={"message": "x", "level": "verbose"}).get_json()
        assert data["level"] == "INFO"

    def test_missing_message(self, client, logs_dir):
        resp = client.post("/api/log", json={"level": "INFO"})
        assert resp.status_code == 400
        assert resp.get_json() == {"success": False, "error": "Message is required"}
        assert list(logs_dir.iterdir()) == []

    def test_non_json_body(self, client):
        resp = client.post("/api/log", data="plain text", content_type="text/plain")
        assert resp.status_code == 400

    def test_io_error_is_500(self, client, logs_dir):
        (logs_dir / f"log-{TODAY}.txt").mkdir()
        resp = client.post("/api/log", json={"message": "x"})
        assert resp.status_code == 500
        assert resp.get_json()["success"] is False


class TestBatch:
    def test_all_successful(self, client):
        resp = client.post("/api/logs/batch", json={"logs": [
            {"message": "a", "date": "2025-01-10"},
            {"message": "b", "date": "2025-01-11"},
            {"message": "c", "date": "2025-01-12"},
        ]})

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["success"] is True
        assert data["message"] == "Batch log completed: 3/3 logs written successfully"
        results = data["results"]
        assert (results["total"], results["successful"], results["failed"]) == (3, 3, 0)
        assert sorted(results["files_written"]) == [
            "log-2025-01-10.txt", "log-2025-01-11.txt", "log-2025-01-12.txt",
        ]
        assert "errors" not in results

    def test_partial_failure_is_207(self, client):
        resp = client.post("/api/logs/batch", json={"logs": [
            {"message": "ok"},
            {"component": "NoMessage"},
        ]})

        assert resp.status_code == 207
        data = resp.get_json()
        assert data["success"] is False
        assert data["results"]["failed"] == 1
        assert data["results"]["errors"] == [
            {"index": 1, "error": "Message is required", "log": {"component": "NoMessage"}},
        ]

    def test_envelope_errors(self, client):
        assert client.post("/api/logs/batch", json={}).status_code == 400
        assert client.post("/api/logs/batch", json={"logs": "nope"}).status_code == 400
        resp = client.post("/api/logs/batch", json={"logs": []})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Logs array cannot be empty"

    def test_over_limit_creates_nothing(self, client, logs_dir):
        resp = client.post("/api/logs/batch", json={"logs": [{"message": "x"}] * 1001})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Maximum 1000 logs per batch allowed"
        assert list(logs_dir.iterdir()) == []


class TestReadAndDownload:
    def test_read_round_trip(self, client):
        for i in range(3):
            client.post("/api/log", json={"message": f"entry {i}"})

        resp = client.get(f"/api/log/{TODAY}")

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["file"] == f"log-{TODAY}.txt"
        assert data["total_lines"] == 3
        assert [line.rsplit(" ", 1)[1] for line in data["content"]] == ["0", "1", "2"]

    def test_read_invalid_utf8(self, client, logs_dir):
        (logs_dir / "log-2025-01-10.txt").write_bytes(b"ok line\n\xff\xfe bad\n")

        resp = client.get("/api/log/2025-01-10")

        assert resp.status_code == 200
        assert resp.get_json()["total_lines"] == 2

    def test_read_errors(self, client):
        resp = client.get("/api/log/2024-13-01")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid date format. Use YYYY-MM-DD"
        assert client.get("/api/log/2024-01-01").status_code == 404

    def test_download(self, client, touch):
        touch("log-2025-01-10.txt", "raw line\n")

        resp = client.get("/api/log/download/2025-01-10")

        assert resp.status_code == 200
        assert resp.data == b"raw line\n"
        assert resp.mimetype == "text/plain"
        disposition = resp.headers["Content-Disposition"]
        assert disposition.startswith("attachment")
        assert "log-2025-01-10.txt" in disposition
        resp.close()

    def test_download_errors(self, client):
        assert client.get("/api/log/download/10-01-2025").status_code == 400
        assert client.get("/api/log/download/2025-01-10").status_code == 404


class TestListing:
    def test_list_newest_first(self, client, touch):
        touch("log-2025-01-10.txt")
        touch("log-2025-01-12.txt")
        touch("log-bad.txt")

        data = client.get("/api/logs").get_json()

        assert data["success"] is True
        assert [item["date"] for item in data["logs"]] == ["2025-01-12", "2025-01-10"]
        assert data["logs"][0]["path"] == "/api/log/2025-01-12"


class TestDownloadAll:
    def test_empty_is_404(self, client):
        resp = client.get("/api/logs/download-all")
        assert resp.status_code == 404
        assert resp.get_json()["success"] is False

    def test_zip_stream(self, client, touch):
        touch("log-2025-01-10.txt", "a\n")
        touch("log-2025-01-11.txt", "b\n")

        resp = client.get("/api/logs/download-all")

        assert resp.status_code == 200
        assert resp.mimetype == "application/zip"
        assert 'filename="all-logs_2025-01-15_14-30-05.zip"' in resp.headers["Content-Disposition"]
        with zipfile.ZipFile(io.BytesIO(resp.data)) as zf:
            manifest = json.loads(zf.read("logs-summary.json"))
            assert zf.read("log-2025-01-11.txt") == b"b\n"
        assert manifest["total_files"] == 2


class TestCleanup:
    def test_manual_cleanup(self, client, touch, logs_dir):
        touch("log-2024-12-31.txt", "old\n")
        touch("log-2025-01-01.txt", "boundary\n")

        resp = client.post("/api/logs/cleanup")

        assert resp.status_code == 200
        results = resp.get_json()["results"]
        assert results["deleted"] == 1
        assert results["deleted_files"] == ["log-2024-12-31.txt"]
        assert results["kept"] == 1
        assert results["errors"] == 0
        assert not (logs_dir / "log-2024-12-31.txt").exists()

    def test_cleanup_failure_is_500(self, client, app, monkeypatch):
        catalog = app.config["components"]["catalog"]

        def broken():
            raise OSError("listing failed")

        monkeypatch.setattr(catalog, "candidate_files", broken)

        resp = client.post("/api/logs/cleanup")
        assert resp.status_code == 500
        data = resp.get_json()
        assert data["success"] is False
        assert data["message"] == "listing failed"


class TestDelete:
    def test_delete_past_day(self, client, touch, logs_dir):
        touch("log-2025-01-10.txt", "x\n")

        resp = client.delete("/api/log/2025-01-10")

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["deleted_file"] == "log-2025-01-10.txt"
        assert data["date"] == "2025-01-10"
        assert not (logs_dir / "log-2025-01-10.txt").exists()
        audit = client.get(f"/api/log/{TODAY}").get_json()["content"]
        assert len(audit) == 1
        assert "Log file deleted: log-2025-01-10.txt (2025-01-10)" in audit[0]

    def test_delete_today_has_no_audit(self, client, logs_dir):
        client.post("/api/log", json={"message": "x"})
        assert client.delete(f"/api/log/{TODAY}").status_code == 200
        assert list(logs_dir.iterdir()) == []

    def test_delete_errors(self, client):
        assert client.delete("/api/log/yesterday").status_code == 400
        assert client.delete("/api/log/2025-01-10").status_code == 404


class TestUnexpectedErrors:
    def test_unhandled_exception_is_json_500(self, client, app, monkeypatch):
        catalog = app.config["components"]["catalog"]

        def broken():
            raise RuntimeError("catalog bug")

        monkeypatch.setattr(catalog, "list_partitions", broken)

        resp = client.get("/api/logs")
        assert resp.status_code == 500
        data = resp.get_json()
        assert data == {"success": False, "error": "Internal server error", "message": "catalog bug"}

    def test_unknown_route_keeps_404(self, client):
        assert client.get("/no/such/route").status_code == 404
        assert client.put("/api/logs").status_code == 405


class TestCors:
    def test_responses_allow_any_origin(self, client):
        resp = client.get("/health", headers={"Origin": "http://example.com"})
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    def test_preflight(self, client):
        resp = client.options("/api/log", headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
        })
        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]

    def test_configured_origin_and_disabled(self, config):
        config.set("server", "cors_origin", "http://dash.local")
        resp = create_app(config).test_client().get("/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "http://dash.local"

        config.set("server", "cors_origin", "")
        resp = create_app(config).test_client().get("/health")
        assert "Access-Control-Allow-Origin" not in resp.headers
