# helpers.py
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

JSON_OBJECT_RE = re.compile(r"\{.*\}", re.S)

def _now_iso() -> str:
    # 2024-05-01T12:30:00.123Z, same shape the frontend already sorts on
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def _strip_fences(content: str) -> str:
    cleaned = (content or "").strip()
    if cleaned.startswith("```"):
        cleaned = "\n".join(cleaned.splitlines()[1:])
    if cleaned.endswith("```"):
        cleaned = "\n".join(cleaned.splitlines()[:-1])
    return cleaned.strip()

def _parse_json_object(content: str) -> Optional[Dict[str, Any]]:
    """Best-effort parse of a JSON object out of an LLM reply."""
    cleaned = _strip_fences(content)
    for candidate in (cleaned, *JSON_OBJECT_RE.findall(cleaned)[:1]):
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None
