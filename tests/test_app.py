import io

import pytest

import app as app_module
import llm_client
from llm_client import AnalysisError
from parsers import DOCX_MIME, PDF_MIME, ExtractionError
from storage import StorageWriteError

ANALYSIS = {
    "overallScore": 81,
    "categoryScores": {"formatting": 80, "content": 82, "keywords": 79, "impact": 83},
    "suggestions": ["Add metrics"],
    "strengths": ["Concise"],
}


def _upload(client, data=b"%PDF-1.0 fake content", filename="test.pdf", mimetype=PDF_MIME, headers=None):
    return client.post(
        "/api/resumes/upload",
        data={"resumeFile": (io.BytesIO(data), filename, mimetype)},
        content_type="multipart/form-data",
        headers=headers or {},
    )


@pytest.fixture
def fake_pdf(monkeypatch):
    monkeypatch.setattr(app_module, "extract_text", lambda raw, kind: "Parsed PDF Text Content")


@pytest.fixture
def resumes(flask_app):
    return flask_app.extensions["uploaded_resumes"]


def test_health(client):
    assert client.get("/").get_json()["status"] == "ok"


def test_upload_pdf_as_signed_in_user(client, auth_header, resumes, fake_pdf):
    res = _upload(client, headers=auth_header("user-456"))
    assert res.status_code == 201
    body = res.get_json()
    assert body["message"] == "Resume uploaded and parsed successfully"
    rec = resumes.get(body["resumeId"])
    assert rec["ownerId"] == "user-456"
    assert rec["originalFilename"] == "test.pdf"
    assert rec["parsedText"] == "Parsed PDF Text Content"
    assert rec["uploadTimestamp"]


def test_upload_docx_anonymously(client, resumes, docx_bytes):
    res = _upload(client, data=docx_bytes("Parsed DOCX Text Content"), filename="test.docx", mimetype=DOCX_MIME)
    assert res.status_code == 201
    rec = resumes.get(res.get_json()["resumeId"])
    assert rec["ownerId"] == "anonymous"
    assert rec["parsedText"] == "Parsed DOCX Text Content"


def test_upload_without_file(client, resumes):
    res = client.post("/api/resumes/upload")
    assert res.status_code == 400
    assert "No file uploaded" in res.get_json()["message"]
    assert resumes.store.load() == {}


def test_upload_unsupported_type(client, resumes):
    res = _upload(client, data=b"Plain text file", filename="test.txt", mimetype="text/plain")
    assert res.status_code == 400
    assert "Unsupported file type" in res.get_json()["message"]
    assert resumes.store.load() == {}


def test_upload_extraction_failure(client, resumes, monkeypatch):
    def fail(raw, kind):
        raise ExtractionError("Could not extract text from this PDF")
    monkeypatch.setattr(app_module, "extract_text", fail)
    res = _upload(client)
    assert res.status_code == 400
    assert "Could not extract text from this PDF" in res.get_json()["message"]
    assert resumes.store.load() == {}


def test_upload_storage_failure(client, resumes, fake_pdf, monkeypatch):
    def fail(payload):
        raise StorageWriteError("disk full")
    monkeypatch.setattr(resumes, "add", fail)
    res = _upload(client)
    assert res.status_code == 500
    assert "Internal server error during resume processing" in res.get_json()["message"]


def test_list_only_callers_resumes_newest_first(client, auth_header, resumes):
    older = resumes.add({"ownerId": "user-1", "originalFilename": "old.pdf"})
    newer = resumes.add({"ownerId": "user-1", "originalFilename": "new.pdf"})
    resumes.add({"ownerId": "user-2", "originalFilename": "theirs.pdf"})
    resumes.add({"ownerId": "anonymous", "originalFilename": "anon.pdf"})
    # force distinct timestamps
    store = resumes.store
    data = store.load()
    data[older]["uploadTimestamp"] = "2024-01-01T00:00:00.000Z"
    data[newer]["uploadTimestamp"] = "2024-02-01T00:00:00.000Z"
    data[newer]["analysis"] = {"overallScore": 77, "analysisTimestamp": "2024-02-02T00:00:00.000Z"}
    store.save(data)

    body = client.get("/api/resumes", headers=auth_header("user-1")).get_json()
    assert [r["id"] for r in body["resumes"]] == [newer, older]
    assert body["resumes"][0]["overallScore"] == 77
    assert body["resumes"][1]["overallScore"] is None
    assert "parsedText" not in body["resumes"][0]


def test_list_empty(client):
    assert client.get("/api/resumes").get_json() == {"resumes": []}


def test_analyze_claims_anonymous_upload(client, auth_header, resumes, monkeypatch):
    monkeypatch.setattr(app_module, "analyze_resume_with_llm", lambda text: dict(ANALYSIS))
    rid = resumes.add({"ownerId": "anonymous", "parsedText": "hello world", "originalFilename": "cv.pdf"})

    res = client.post(f"/api/resumes/{rid}/analyze", headers=auth_header("user-42"))
    assert res.status_code == 200
    analysis = res.get_json()["analysis"]
    assert analysis["overallScore"] == 81
    assert analysis["analysisTimestamp"]

    rec = resumes.get(rid)
    assert rec["ownerId"] == "user-42"
    assert rec["parsedText"] == "hello world"
    assert rec["analysis"]["categoryScores"]["impact"] == 83


def test_analyze_forbidden_vs_missing(client, auth_header, resumes):
    rid = resumes.add({"ownerId": "user-1", "parsedText": "hello"})
    assert client.post(f"/api/resumes/{rid}/analyze", headers=auth_header("user-2")).status_code == 403
    assert client.post(f"/api/resumes/{rid}/analyze").status_code == 403
    assert client.post("/api/resumes/missing/analyze", headers=auth_header("user-2")).status_code == 404


def test_analyze_empty_text(client, resumes):
    rid = resumes.add({"ownerId": "anonymous", "parsedText": "   "})
    res = client.post(f"/api/resumes/{rid}/analyze")
    assert res.status_code == 400
    assert "empty resume text" in res.get_json()["message"]


def test_analyze_engine_failure(client, resumes, monkeypatch):
    def fail(text):
        raise AnalysisError("Failed to parse analysis response as JSON")
    monkeypatch.setattr(app_module, "analyze_resume_with_llm", fail)
    rid = resumes.add({"ownerId": "anonymous", "parsedText": "hello"})
    res = client.post(f"/api/resumes/{rid}/analyze")
    assert res.status_code == 502
    assert "analysis" not in resumes.get(rid)


def test_get_resume_by_id(client, auth_header, resumes):
    rid = resumes.add({"ownerId": "anonymous", "parsedText": "hello", "originalFilename": "cv.pdf"})

    res = client.get(f"/api/resumes/{rid}")
    assert res.status_code == 200
    assert res.get_json()["resume"] == {
        "id": rid,
        "originalFilename": "cv.pdf",
        "uploadTimestamp": resumes.get(rid)["uploadTimestamp"],
        "analysis": None,
    }

    assert client.get(f"/api/resumes/{rid}", headers=auth_header("user-9")).status_code == 200
    assert resumes.get(rid)["ownerId"] == "user-9"
    assert client.get(f"/api/resumes/{rid}").status_code == 403
    assert client.get("/api/resumes/missing").status_code == 404


def test_invalid_token_falls_back_to_anonymous(client, resumes):
    rid = resumes.add({"ownerId": "anonymous", "originalFilename": "cv.pdf"})
    res = client.get("/api/resumes", headers={"Authorization": "Bearer not-a-real-token"})
    assert res.status_code == 200
    assert [r["id"] for r in res.get_json()["resumes"]] == [rid]
    assert resumes.get(rid)["ownerId"] == "anonymous"


def test_delete_is_owner_only(client, auth_header, resumes):
    anon = resumes.add({"ownerId": "anonymous"})
    mine = resumes.add({"ownerId": "user-1"})

    # deleting never claims
    assert client.delete(f"/api/resumes/{anon}", headers=auth_header("user-1")).status_code == 403
    assert resumes.get(anon)["ownerId"] == "anonymous"

    assert client.delete(f"/api/resumes/{mine}", headers=auth_header("user-2")).status_code == 403
    res = client.delete(f"/api/resumes/{mine}", headers=auth_header("user-1"))
    assert res.get_json() == {"ok": True, "deleted": mine}
    assert resumes.get(mine) is None
    assert client.delete(f"/api/resumes/{mine}", headers=auth_header("user-1")).status_code == 404


def test_analyze_without_api_key_is_json_502(client, resumes, monkeypatch):
    monkeypatch.setattr(llm_client, "_client", None)
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    rid = resumes.add({"ownerId": "anonymous", "parsedText": "hello"})

    res = client.post(f"/api/resumes/{rid}/analyze")
    assert res.status_code == 502
    assert res.is_json
    assert res.get_json()["message"] == "Failed to analyze resume"
    assert "analysis" not in resumes.get(rid)
