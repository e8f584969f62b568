"""Tests for the HTTP endpoints."""

import csv
import io
import json
import os

from tasklog.csv_export import CSV_FIELDS
from tasklog.errors import ConcurrencyError, StoreError
from tasklog.store import LogFileStore


def _service(app):
    return app.config["components"]["service"]


class TestIndex:
    def test_serves_landing_page(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert b"Task Log" in resp.data

    def test_serves_static_files(self, client, config):
        with open(os.path.join(config.public_dir, "app.js"), "w") as f:
            f.write("console.log('hi');")
        resp = client.get("/app.js")
        assert resp.status_code == 200
        assert b"console.log" in resp.data


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "ok"
        assert data["entries"] == 0
        assert data["initialized"] is True


class TestSaveLog:
    def test_valid_entry(self, client, sample_entry):
        resp = client.post("/save-log", json=sample_entry)
        assert resp.status_code == 200
        assert resp.get_json() == {"message": "Log saved"}

    def test_missing_timestamp(self, client):
        resp = client.post("/save-log", json={"project": "Website"})
        assert resp.status_code == 400
        data = resp.get_json()
        assert "error" in data
        assert data["details"]

    def test_nan_rejected(self, client, config):
        resp = client.post("/save-log", data='{"timestamp": "t", "x": NaN}',
                           content_type="application/json")
        assert resp.status_code == 400
        assert "NaN" in resp.get_json()["details"][0]
        with open(config.log_file) as f:
            assert json.load(f) == []

    def test_infinity_rejected(self, client):
        for literal in ("Infinity", "-Infinity"):
            resp = client.post("/save-log", data='{"timestamp": ' + literal + "}",
                               content_type="application/json")
            assert resp.status_code == 400
        assert client.get("/load-log").get_json() == []

    def test_empty_body(self, client):
        resp = client.post("/save-log", data=b"", content_type="application/json")
        assert resp.status_code == 400

    def test_oversized_body_is_413(self, client, config):
        entry = {"timestamp": "t", "projectDescription": "x" * config.max_body_bytes}
        resp = client.post("/save-log", json=entry)
        assert resp.status_code == 413
        assert client.get("/load-log").get_json() == []

    def test_non_json_body(self, client):
        resp = client.post("/save-log", data="timestamp=1", content_type="text/plain")
        assert resp.status_code == 400

    def test_array_body(self, client):
        resp = client.post("/save-log", json=[{"timestamp": "t"}])
        assert resp.status_code == 400

    def test_rejected_entry_not_stored(self, client):
        client.post("/save-log", json={})
        assert client.get("/load-log").get_json() == []

    def test_store_failure_is_500(self, client, monkeypatch):
        def failing_write(self, entries):
            raise StoreError("disk full")

        monkeypatch.setattr(LogFileStore, "write_all", failing_write)
        resp = client.post("/save-log", json={"timestamp": "t"})
        assert resp.status_code == 500
        assert "error" in resp.get_json()

    def test_lock_failure_is_500(self, app, client, monkeypatch):
        def busy(entry):
            raise ConcurrencyError("busy")

        monkeypatch.setattr(_service(app), "append", busy)
        resp = client.post("/save-log", json={"timestamp": "t"})
        assert resp.status_code == 500
        assert "error" in resp.get_json()


class TestLoadLog:
    def test_returns_entries_in_order(self, client):
        for i in range(3):
            client.post("/save-log", json={"timestamp": f"t{i}"})
        resp = client.get("/load-log")
        assert resp.status_code == 200
        assert [e["timestamp"] for e in resp.get_json()] == ["t0", "t1", "t2"]

    def test_corrupt_store_returns_empty_array(self, client, config):
        with open(config.log_file, "w") as f:
            f.write("}{")
        resp = client.get("/load-log")
        assert resp.status_code == 200
        assert resp.get_json() == []

    def test_missing_store_returns_empty_array(self, client, config):
        os.remove(config.log_file)
        resp = client.get("/load-log")
        assert resp.status_code == 200
        assert resp.get_json() == []


class TestCsvExport:
    def test_csv_download(self, client, sample_entry):
        client.post("/save-log", json=sample_entry)
        resp = client.get("/log.csv")
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "filename=log.csv" in resp.headers["Content-Disposition"]

        rows = list(csv.reader(io.StringIO(resp.data.decode("utf-8"))))
        assert rows[0] == list(CSV_FIELDS)
        assert rows[1][0] == sample_entry["timestamp"]

    def test_missing_store_is_404(self, client, config):
        os.remove(config.log_file)
        resp = client.get("/log.csv")
        assert resp.status_code == 404
        assert b"Log file not found" in resp.data


class TestClearLog:
    def test_clear(self, client):
        client.post("/save-log", json={"timestamp": "t"})
        resp = client.post("/clear-log")
        assert resp.status_code == 200
        assert resp.get_json() == {"message": "Log cleared successfully."}
        assert client.get("/load-log").get_json() == []

    def test_clear_failure_is_500(self, client, monkeypatch):
        def failing_write(self, entries):
            raise StoreError("read-only filesystem")

        monkeypatch.setattr(LogFileStore, "write_all", failing_write)
        resp = client.post("/clear-log")
        assert resp.status_code == 500
        assert "error" in resp.get_json()


class TestFullFlow:
    def test_save_load_export_clear(self, client, sample_entry):
        for i in range(5):
            entry = dict(sample_entry, timestamp=f"2024-03-04T09:1{i}:00Z")
            assert client.post("/save-log", json=entry).status_code == 200

        entries = client.get("/load-log").get_json()
        assert len(entries) == 5
        assert entries[0] == dict(sample_entry, timestamp="2024-03-04T09:10:00Z")

        rows = list(csv.reader(io.StringIO(client.get("/log.csv").data.decode("utf-8"))))
        assert len(rows) == 6

        assert client.post("/clear-log").status_code == 200
        assert client.get("/load-log").get_json() == []
        assert client.get("/health").get_json()["entries"] == 0
