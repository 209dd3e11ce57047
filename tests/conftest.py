import io
import os
import tempfile

# env must be in place before config.py / app.py are imported
os.environ["ENV"] = "test"
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="resume-api-test-"))
os.environ.setdefault("JWT_SECRET_KEY", "test-only-jwt-secret-0123456789abcdef0123456789")

import pytest
from docx import Document
from flask_jwt_extended import create_access_token

from resume_store import GeneratedResumes, UploadedResumes
from storage import MemoryStore


@pytest.fixture
def flask_app(monkeypatch):
    import app as app_module
    import auth_store

    app = app_module.app
    monkeypatch.setitem(app.extensions, "uploaded_resumes", UploadedResumes(MemoryStore()))
    monkeypatch.setitem(app.extensions, "generated_resumes", GeneratedResumes(MemoryStore()))
    monkeypatch.setattr(auth_store, "_store", MemoryStore())
    return app


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture
def auth_header(flask_app):
    def make(user_id):
        with flask_app.app_context():
            token = create_access_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}
    return make


@pytest.fixture
def docx_bytes():
    def make(*paragraphs):
        doc = Document()
        for p in paragraphs:
            doc.add_paragraph(p)
        buf = io.BytesIO()
        doc.save(buf)
        return buf.getvalue()
    return make
