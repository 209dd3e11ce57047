# builder.py
"""Generated resumes: drafted by the LLM from a form, then edited in place."""
from __future__ import annotations
import logging

from flask import Blueprint, current_app, jsonify, request

from auth import current_identity, load_for_caller
from llm_client import AnalysisError, generate_resume_llm
from storage import StorageWriteError

logger = logging.getLogger(__name__)

builder_bp = Blueprint("builder", __name__)


def _generated():
    return current_app.extensions["generated_resumes"]


@builder_bp.post("/generate")
def generate():
    data = request.get_json(silent=True) or {}
    inputs = data.get("inputs")
    if not isinstance(inputs, dict) or not inputs:
        return jsonify({"message": "Bad Request: 'inputs' object is required"}), 400

    user_id = current_identity()
    title = (data.get("title") or "").strip() or "Untitled resume"

    try:
        content = generate_resume_llm(inputs)
    except AnalysisError as e:
        logger.error("generation failed for user %s: %s", user_id, e)
        return jsonify({"message": "Failed to generate resume", "error": str(e)}), 502

    try:
        rid = _generated().add({"ownerId": user_id, "title": title, "inputs": inputs, "content": content})
    except StorageWriteError as e:
        logger.error("could not save generated resume: %s", e)
        return jsonify({"message": "Internal server error saving generated resume"}), 500

    return jsonify({"generatedResumeId": rid, "resume": _generated().get(rid)}), 201


@builder_bp.get("/")
def list_generated():
    user_id = current_identity()
    resumes = sorted(_generated().list_by_owner(user_id), key=lambda r: r.get("createdAt", ""), reverse=True)
    return jsonify({"resumes": resumes})


@builder_bp.get("/<resume_id>")
def get_generated(resume_id: str):
    record, error = load_for_caller(_generated(), resume_id, current_identity(), allow_claim=True)
    if error:
        return error
    return jsonify({"resume": record})


@builder_bp.put("/<resume_id>")
def update_generated(resume_id: str):
    data = request.get_json(silent=True) or {}
    changes = {k: data[k] for k in ("title", "content") if k in data}
    if not changes:
        return jsonify({"message": "Bad Request: nothing to update (title, content)"}), 400

    _, error = load_for_caller(_generated(), resume_id, current_identity(), allow_claim=True)
    if error:
        return error

    try:
        updated = _generated().bump(resume_id, changes)
    except StorageWriteError as e:
        logger.error("could not update generated resume %s: %s", resume_id, e)
        return jsonify({"message": "Internal server error updating generated resume"}), 500
    if updated is None:
        # deleted between the access check and the write
        return jsonify({"message": "Resume not found"}), 404

    return jsonify({"resume": updated})


@builder_bp.delete("/<resume_id>")
def delete_generated(resume_id: str):
    _, error = load_for_caller(_generated(), resume_id, current_identity())
    if error:
        return error
    try:
        _generated().delete(resume_id)
    except StorageWriteError as e:
        logger.error("could not delete generated resume %s: %s", resume_id, e)
        return jsonify({"message": "Internal server error deleting generated resume"}), 500
    return jsonify({"ok": True, "deleted": resume_id})
