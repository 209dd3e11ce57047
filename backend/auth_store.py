# auth_store.py
from __future__ import annotations
import os
from typing import Optional, Dict, Any, List

from passlib.hash import pbkdf2_sha256

from helpers import _now_iso
from storage import JsonFileStore, new_id


# -------- Users collection (same local JSON store as resumes) --------
_store = None

def init_store(data_dir: str, filename: str = "users.json") -> JsonFileStore:
    global _store
    _store = JsonFileStore(os.path.join(data_dir, filename))
    return _store

def _get_store():
    if _store is None:
        raise RuntimeError("users store not initialised: call init_auth(app) first")
    return _store

def _norm_email(email: str) -> str:
    return (email or "").lower().strip()

def _public(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k != "pwHash"}

# -------- Users --------
def find_user(email: str) -> Optional[Dict[str, Any]]:
    email_n = _norm_email(email)
    for user in _get_store().load().values():
        if user.get("email") == email_n:
            return user
    return None

def _hash_password(pw: str) -> str:
    return pbkdf2_sha256.hash(pw)

def verify_password(pw: str, pw_hash: str) -> bool:
    try:
        return pbkdf2_sha256.verify(pw, pw_hash)
    except (ValueError, TypeError):
        # malformed or missing stored hash
        return False

def create_user(email: str, password: str, name: str = "", roles: Optional[List[str]] = None) -> Dict[str, Any]:
    store = _get_store()
    email_n = _norm_email(email)
    with store.lock:
        users = store.load()
        if any(u.get("email") == email_n for u in users.values()):
            raise ValueError("email_already_exists")
        user_id = new_id()
        users[user_id] = {
            "id": user_id,
            "email": email_n,
            "pwHash": _hash_password(password),
            "name": (name or "").strip(),
            "roles": roles or ["user"],
            "createdAt": _now_iso(),
        }
        store.save(users)
    return _public(users[user_id])
