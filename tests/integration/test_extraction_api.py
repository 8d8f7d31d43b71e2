"""Integration tests for the extraction HTTP API"""

from uuid import uuid4

import pytest

from conftest import StaticLayoutExtractor, build_workbook, sample_layout, template_cells
from debitflow.dependencies import get_extraction_pipeline
from debitflow.extraction.gateway import OrderGateway
from debitflow.extraction.pipeline import ExtractionPipeline
from debitflow.infrastructure.repositories import SqlAlchemyCatalogStore, SqlAlchemyOrderStore
from debitflow.main import app

pytestmark = pytest.mark.integration

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
URL = "/api/v1/extractions"


def _template_upload():
    return {"file": ("fiche.xlsx", build_workbook({"FICHE DEBIT DBPM": template_cells()}), XLSX_MIME)}


def _pdf_upload():
    return {"file": ("fiche.pdf", b"%PDF-1.4 fiche", "application/pdf")}


@pytest.fixture
def pdf_client(client, session_factory):
    """Client whose pipeline reads the sample layout for any PDF."""

    def _pipeline():
        return ExtractionPipeline(
            gateway=OrderGateway(SqlAlchemyOrderStore(session_factory)),
            catalog=SqlAlchemyCatalogStore(session_factory),
            extractor_for=lambda mime_type: StaticLayoutExtractor(sample_layout()),
        )

    app.dependency_overrides[get_extraction_pipeline] = _pipeline
    return client


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "X-Request-ID" in response.headers


class TestUpload:
    """POST /api/v1/extractions"""

    def test_requires_token(self, client):
        response = client.post(URL, files=_template_upload())
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Missing bearer token"}

    def test_unsupported_type(self, client, auth_headers):
        response = client.post(URL, files={"file": ("notes.txt", b"hello", "text/plain")}, headers=auth_headers)
        assert response.status_code == 415
        assert response.json()["success"] is False

    def test_empty_file(self, client, auth_headers):
        response = client.post(URL, files={"file": ("fiche.pdf", b"", "application/pdf")}, headers=auth_headers)
        assert response.status_code == 400

    def test_template_spreadsheet(self, client, auth_headers):
        response = client.post(URL, files=_template_upload(), headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["orderId"]
        assert body["itemsCount"] == 2
        assert body["method"] == "excel_template"
        assert body["totalArea"] == pytest.approx(1.44)
        assert body["totalVolume"] == pytest.approx(0.1)
        assert body["extractedHeaderSummary"]["clientName"] == "MARBRERIE DUPONT"
        assert body["extractedHeaderSummary"]["orderNumber"] == "2451"
        assert "ARC reference number is missing" in body["warnings"]
        assert body["preview"] is False

    def test_preview(self, client, auth_headers):
        response = client.post(URL, files=_template_upload(), data={"preview": "true"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["orderId"] is None
        assert response.json()["preview"] is True

    def test_unreadable_spreadsheet(self, client, auth_headers):
        response = client.post(
            URL, files={"file": ("fiche.xlsx", b"garbage", XLSX_MIME)}, headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"].startswith("The spreadsheet could not be read")

    def test_duplicate_reference(self, pdf_client, auth_headers):
        first = pdf_client.post(URL, files=_pdf_upload(), headers=auth_headers)
        assert first.status_code == 200
        assert first.json()["method"] == "layout_fallback"
        assert first.json()["extractedHeaderSummary"]["referenceNumber"] == "10234"

        second = pdf_client.post(URL, files=_pdf_upload(), headers=auth_headers)

        assert second.status_code == 409
        assert second.json() == {
            "success": False,
            "error": "An order with reference number 10234 already exists",
        }


class TestLogs:
    """GET /api/v1/extractions/logs"""

    def test_list_newest_first(self, client, auth_headers):
        client.post(URL, files=_template_upload(), headers=auth_headers)
        client.post(URL, files={"file": ("fiche.xlsx", b"garbage", XLSX_MIME)}, headers=auth_headers)

        response = client.get(f"{URL}/logs", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert [item["status"] for item in body["items"]] == ["error", "needs_review"]

    def test_status_filter(self, client, auth_headers):
        client.post(URL, files=_template_upload(), headers=auth_headers)
        client.post(URL, files={"file": ("fiche.xlsx", b"garbage", XLSX_MIME)}, headers=auth_headers)

        body = client.get(f"{URL}/logs", params={"status": "error"}, headers=auth_headers).json()

        assert body["total"] == 1
        assert body["items"][0]["method"] == "none"

    def test_limit_capped(self, client, auth_headers):
        body = client.get(f"{URL}/logs", params={"limit": 500}, headers=auth_headers).json()
        assert body["limit"] == 100

    def test_detail(self, client, auth_headers, user_id):
        client.post(URL, files=_template_upload(), headers=auth_headers)
        log_id = client.get(f"{URL}/logs", headers=auth_headers).json()["items"][0]["id"]

        response = client.get(f"{URL}/logs/{log_id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == str(user_id)
        assert body["parsed_draft"]["method"] == "excel_template"
        assert [step["step"] for step in body["steps"]][:2] == ["layout", "template"]
        assert body["metadata"]["mime_type"] == XLSX_MIME

    def test_detail_not_found(self, client, auth_headers):
        response = client.get(f"{URL}/logs/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_logs_require_token(self, client):
        assert client.get(f"{URL}/logs").status_code == 401
