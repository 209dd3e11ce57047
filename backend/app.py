# app.py
from __future__ import annotations
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_talisman import Talisman
from werkzeug.utils import secure_filename

# --- Load env BEFORE importing config (so config sees env) ---
ENV_PATH = Path(__file__).with_name(".env")
load_dotenv(ENV_PATH)

# --- Local modules ---
from config import config_for_env, validate_required_secrets
from helpers import _now_iso
from storage import JsonFileStore, StorageWriteError
from resume_store import UploadedResumes, GeneratedResumes
from parsers import ExtractionError, detect_kind, extract_text
from llm_client import AnalysisError, analyze_resume_with_llm
from auth import auth_bp, init_auth, limiter, current_identity, load_for_caller
from builder import builder_bp

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("resume_api")

# ------------------------------
# App / Config
# ------------------------------
app = Flask(__name__)
app.config.from_object(config_for_env(os.getenv("ENV")))
validate_required_secrets()  # raises only when ENV=prod and secrets missing
app.url_map.strict_slashes = False  # avoid /api/resumes -> /api/resumes/ redirects

jwt = JWTManager(app)

CORS(
    app,
    resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"] or "*"}},
    supports_credentials=True,
    allow_headers=["Authorization", "Content-Type"],
    methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
)

# Security headers; only force HTTPS in prod
IS_PROD = os.getenv("ENV") == "prod"
Talisman(
    app,
    force_https=IS_PROD,
    content_security_policy={
        "default-src": ["'self'"],
        "frame-ancestors": ["'none'"],
    },
    session_cookie_secure=IS_PROD,
    session_cookie_samesite="Lax",
    frame_options="DENY",
    referrer_policy="strict-origin-when-cross-origin",
)

# Auth blueprint (rate limiter is shared with the routes below)
app.register_blueprint(auth_bp, url_prefix="/api/auth")
init_auth(app)
app.register_blueprint(builder_bp, url_prefix="/api/builder")

# Local document store, one JSON file per collection
DATA_DIR = app.config["DATA_DIR"]
app.extensions["uploaded_resumes"] = UploadedResumes(
    JsonFileStore(os.path.join(DATA_DIR, app.config["UPLOADED_RESUMES_FILE"]))
)
app.extensions["generated_resumes"] = GeneratedResumes(
    JsonFileStore(os.path.join(DATA_DIR, app.config["GENERATED_RESUMES_FILE"]))
)

def uploaded_resumes() -> UploadedResumes:
    return app.extensions["uploaded_resumes"]


@app.errorhandler(StorageWriteError)
def _storage_write_failed(e):
    logger.error("storage write failed: %s", e)
    return jsonify({"message": "Internal server error: could not save data"}), 500

@app.errorhandler(413)
def _too_large(e):
    return jsonify({"message": "File too large"}), 413


@app.route("/")
def home():
    return jsonify({"status": "ok", "service": "resume-api"})

# ------------------------------
# Uploaded resumes
# ------------------------------
@app.get("/api/resumes")
def list_resumes():
    user_id = current_identity()
    logger.info("fetching uploaded resumes for user %s", user_id)

    records = sorted(
        uploaded_resumes().list_by_owner(user_id),
        key=lambda r: r.get("uploadTimestamp", ""),
        reverse=True,
    )
    resumes = [
        {
            "id": r["id"],
            "originalFilename": r.get("originalFilename"),
            "uploadTimestamp": r.get("uploadTimestamp"),
            "overallScore": (r.get("analysis") or {}).get("overallScore"),
            "analysisTimestamp": (r.get("analysis") or {}).get("analysisTimestamp"),
        }
        for r in records
    ]
    return jsonify({"resumes": resumes})

@app.post("/api/resumes/upload")
@limiter.limit("30/minute")
def upload():
    user_id = current_identity()

    f = request.files.get("resumeFile")
    if f is None or not f.filename:
        return jsonify({"message": "Bad Request: No file uploaded"}), 400

    kind = detect_kind(f.filename, f.mimetype or "")
    if kind is None or kind not in app.config["ALLOWED_EXTS"]:
        return jsonify({"message": "Unsupported file type: only PDF and DOCX are accepted"}), 400

    raw_bytes = f.read()
    if not raw_bytes:
        return jsonify({"message": "Bad Request: Uploaded file is empty"}), 400

    safe_name = secure_filename(f.filename) or f"resume.{kind}"
    logger.info("processing file %s (%s, %d bytes) for user %s", safe_name, kind, len(raw_bytes), user_id)

    try:
        parsed_text = extract_text(raw_bytes, kind)
    except ExtractionError as e:
        logger.warning("extraction failed for %s: %s", safe_name, e)
        return jsonify({"message": str(e)}), 400

    try:
        resume_id = uploaded_resumes().add({
            "ownerId": user_id,
            "originalFilename": safe_name,
            "mimeType": f.mimetype or "",
            "parsedText": parsed_text,
        })
    except StorageWriteError as e:
        logger.error("resume upload could not be saved: %s", e)
        return jsonify({"message": "Internal server error during resume processing", "error": str(e)}), 500

    return jsonify({"message": "Resume uploaded and parsed successfully", "resumeId": resume_id}), 201

@app.post("/api/resumes/<resume_id>/analyze")
def analyze(resume_id: str):
    user_id = current_identity()
    record, error = load_for_caller(uploaded_resumes(), resume_id, user_id, allow_claim=True)
    if error:
        return error

    parsed_text = (record.get("parsedText") or "").strip()
    if not parsed_text:
        return jsonify({"message": "Cannot analyze empty resume text"}), 400

    logger.info("starting analysis for resume %s, user %s", resume_id, user_id)
    try:
        result = analyze_resume_with_llm(parsed_text)
    except AnalysisError as e:
        logger.error("analysis failed for resume %s: %s", resume_id, e)
        return jsonify({"message": "Failed to analyze resume", "error": str(e)}), 502

    analysis = {**result, "analysisTimestamp": _now_iso()}
    uploaded_resumes().update(resume_id, {"analysis": analysis})
    logger.info("analysis stored for resume %s", resume_id)

    return jsonify({"message": "Resume analyzed successfully", "analysis": analysis})

@app.get("/api/resumes/<resume_id>")
def get_resume(resume_id: str):
    record, error = load_for_caller(uploaded_resumes(), resume_id, current_identity(), allow_claim=True)
    if error:
        return error
    return jsonify({
        "resume": {
            "id": record["id"],
            "originalFilename": record.get("originalFilename"),
            "uploadTimestamp": record.get("uploadTimestamp"),
            "analysis": record.get("analysis"),
        }
    })

@app.delete("/api/resumes/<resume_id>")
def delete_resume(resume_id: str):
    """Delete an uploaded resume and its analysis. Owner only, no claiming."""
    _, error = load_for_caller(uploaded_resumes(), resume_id, current_identity())
    if error:
        return error
    uploaded_resumes().delete(resume_id)
    return jsonify({"ok": True, "deleted": resume_id})

# ------------------------------
# Entrypoint
# ------------------------------
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "3000")), debug=app.config.get("DEBUG", False))
