# auth.py
from __future__ import annotations
import logging
import re
from datetime import timedelta

from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from jwt.exceptions import PyJWTError

from auth_store import find_user, create_user, verify_password, init_store
from ownership import ANONYMOUS
from storage import StorageWriteError

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)

# rate limiter; will be bound to app in init_auth()
limiter = Limiter(key_func=get_remote_address, default_limits=["200/hour"])

TOKEN_TTL = timedelta(minutes=15)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def _password_ok(p: str) -> bool:
    # Min 8 chars, at least 1 letter & 1 digit
    return bool(len(p) >= 8 and re.search(r"[A-Za-z]", p) and re.search(r"\d", p))

def _token_response(user: dict, status: int):
    claims = {"roles": user.get("roles", []), "email": user["email"]}
    token = create_access_token(identity=user["id"], additional_claims=claims, expires_delta=TOKEN_TTL)
    return jsonify({
        "access_token": token,
        "token_type": "Bearer",
        "expires_in": int(TOKEN_TTL.total_seconds()),
        "userId": user["id"],
    }), status

def current_identity() -> str:
    """Caller's user id, or the anonymous sentinel.

    A missing token means anonymous. A bad or expired token is logged and
    also treated as anonymous rather than rejected.
    """
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError) as e:
        logger.warning("optional auth failed, continuing as anonymous: %s", e)
        return ANONYMOUS
    return get_jwt_identity() or ANONYMOUS

def load_for_caller(collection, record_id: str, caller_id: str, allow_claim: bool = False):
    """Return (record, None) or (None, error response) with 404 vs 403 kept apart."""
    record = collection.get_for_caller(record_id, caller_id, allow_claim=allow_claim)
    if record is not None:
        return record, None
    if collection.get(record_id) is not None:
        return None, (jsonify({"message": "Forbidden: You do not own this resume"}), 403)
    return None, (jsonify({"message": "Resume not found"}), 404)

@auth_bp.route("/login", methods=["POST"], strict_slashes=False)
@limiter.limit("10/minute")
def login():
    """
    Request: { "email": "...", "password": "..." }
    Response: { "access_token": "...", "token_type": "Bearer", "expires_in": 900, "userId": "..." }
    """
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"message": "email and password are required"}), 400

    user = find_user(email)
    if not user or not verify_password(password, user.get("pwHash", "")):
        return jsonify({"message": "invalid credentials"}), 401

    logger.info("user %s logged in", user["id"])
    return _token_response(user, 200)

@auth_bp.route("/register", methods=["POST"], strict_slashes=False)
@limiter.limit("5/minute")
def register():
    """
    Request: { "email": "...", "password": "...", "name": "..." }
    Auto-logs in on success with a short-lived JWT.
    """
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    name = (data.get("name") or "").strip()

    if not email or not password:
        return jsonify({"message": "email and password are required"}), 400
    if not EMAIL_RE.match(email):
        return jsonify({"message": "invalid email format"}), 400
    if not _password_ok(password):
        return jsonify({"message": "password too weak (min 8 chars, include letters & digits)"}), 400

    try:
        user = create_user(email, password, name=name, roles=["user"])
    except ValueError as e:
        if str(e) == "email_already_exists":
            # generic message to reduce enumeration risk
            return jsonify({"message": "unable to create account"}), 409
        raise
    except StorageWriteError:
        logger.exception("could not persist new user")
        return jsonify({"message": "Internal server error creating account"}), 500

    return _token_response(user, 201)

@auth_bp.get("/me")
def me():
    return jsonify({"userId": current_identity()})

def init_auth(app):
    """
    Call once from app.py:
        from auth import auth_bp, init_auth
        app.register_blueprint(auth_bp, url_prefix="/api/auth")
        init_auth(app)
    """
    init_store(app.config["DATA_DIR"], app.config["USERS_FILE"])
    limiter.init_app(app)
