"""
Tests for the HTTP routes — conversion, export, institution lookup and transcript upload.
"""

import os
import sys

import pytest
from fastapi.testclient import TestClient

# Ensure backend/ is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.converter import default_engine
from main import app

SAMPLE_CSV = os.path.join(os.path.dirname(__file__), "..", "sample_data", "sample_transcript.csv")


@pytest.fixture
def client(monkeypatch):
    for name in ("WEIGHT_POLICY", "MAX_WEIGHT", "SCHEME_FILE"):
        monkeypatch.delenv(name, raising=False)
    default_engine.cache_clear()
    yield TestClient(app)
    default_engine.cache_clear()


@pytest.fixture
def payload():
    records = []
    for period, mark in ((1, 65), (2, 70), (3, 75)):
        records += [
            {"label": f"Module {period}a", "weight": 60, "mark": mark, "period": period},
            {"label": f"Module {period}b", "weight": 60, "mark": mark, "period": period},
        ]
    return {"institution": "birmingham", "records": records}


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_config(self, client):
        data = client.get("/api/config").json()
        assert "weight_policy" in data
        assert "max_weight" in data


class TestConvertRoute:

    def test_success(self, client, payload):
        response = client.post("/api/convert", json=payload)
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["overall_score"] == pytest.approx(72.5)
        assert data["gpa"] == 3.7
        assert data["classification"] == "First Class Honours (1st)"

    def test_missing_institution(self, client, payload):
        del payload["institution"]
        assert client.post("/api/convert", json=payload).status_code == 400

    def test_missing_records(self, client):
        assert client.post("/api/convert", json={"institution": "leeds"}).status_code == 400

    def test_validation_failure(self, client, payload):
        payload["records"][0]["mark"] = "excellent"
        response = client.post("/api/convert", json=payload)
        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "validation"

    def test_incomplete_failure(self, client, payload):
        payload["records"] = [r for r in payload["records"] if r["period"] != 2]
        response = client.post("/api/convert", json=payload)
        assert response.status_code == 422
        assert response.json()["detail"]["details"]["missing_periods"] == [2]

    def test_configuration_failure(self, client, payload):
        payload["institution"] = "hogwarts"
        response = client.post("/api/convert", json=payload)
        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "configuration"

    def test_cohort(self, client, payload):
        payload["institution"] = "leeds"
        payload["cohort"] = "2022-onwards"
        data = client.post("/api/convert", json=payload).json()
        assert data["cohort"] == "2022-onwards"
        assert data["adjusted_score"] == pytest.approx(data["overall_score"] + 0.5)


class TestExportRoute:

    def test_text_summary(self, client, payload):
        response = client.post("/api/convert/export", json=payload)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "attachment" in response.headers["content-disposition"]
        assert "Grade Conversion Summary" in response.text

    def test_failure_text(self, client, payload):
        payload["institution"] = "hogwarts"
        response = client.post("/api/convert/export", json=payload)
        assert response.status_code == 404
        assert "Conversion Failed" in response.text


class TestInstitutionRoutes:

    def test_list(self, client):
        data = client.get("/api/convert/institutions").json()
        ids = [i["id"] for i in data["institutions"]]
        assert "birmingham" in ids
        leeds = next(i for i in data["institutions"] if i["id"] == "leeds")
        assert leeds["cohorts"] == ["pre-2022", "2022-onwards"]

    def test_describe(self, client):
        data = client.get("/api/convert/institutions/nottingham").json()
        assert data["borderline_margin"] == 1.0
        assert len(data["scales"]) == 2

    def test_describe_unknown(self, client):
        assert client.get("/api/convert/institutions/hogwarts").status_code == 404


class TestUploadRoutes:

    def test_upload_csv(self, client):
        with open(SAMPLE_CSV, "rb") as f:
            response = client.post(
                "/api/upload/transcript",
                files={"file": ("transcript.csv", f, "text/csv")},
            )
        assert response.status_code == 200
        data = response.json()
        assert data["record_count"] == 7
        assert data["mapping"]["weight"] == "Credits"
        assert data["issues"] == []

    def test_uploaded_records_convert(self, client):
        with open(SAMPLE_CSV, "rb") as f:
            upload = client.post(
                "/api/upload/transcript",
                files={"file": ("transcript.csv", f, "text/csv")},
            ).json()
        response = client.post("/api/convert", json={"institution": "birmingham", "records": upload["records"]})
        assert response.status_code == 200
        assert response.json()["overall_score"] == pytest.approx(72.5)

    def test_mapping_override(self, client):
        content = b"A,B,C,D\nLaw,20,65,1\n"
        response = client.post(
            "/api/upload/transcript",
            files={"file": ("t.csv", content, "text/csv")},
            data={"mapping": '{"label": "A", "weight": "B", "mark": "C", "period": "D"}'},
        )
        assert response.status_code == 200
        assert response.json()["records"] == [{"label": "Law", "weight": "20", "mark": "65", "period": "1"}]

    def test_bad_mapping_json(self, client):
        response = client.post(
            "/api/upload/transcript",
            files={"file": ("t.csv", b"a,b\n1,2\n", "text/csv")},
            data={"mapping": "{not json"},
        )
        assert response.status_code == 400

    def test_unsupported_type(self, client):
        response = client.post(
            "/api/upload/transcript",
            files={"file": ("t.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 400

    def test_sample(self, client):
        data = client.get("/api/upload/sample/transcript").json()
        assert data["filename"] == "sample_transcript.csv"
        assert data["record_count"] == 7

    def test_unknown_sample(self, client):
        assert client.get("/api/upload/sample/nope").status_code == 404
