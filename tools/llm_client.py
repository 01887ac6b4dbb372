"""Parsing helpers for structured LLM output.

Models asked for JSON regularly wrap it in code fences, surround it with
prose or leave raw newlines inside strings. Everything here turns that into
a dict, or raises a ValueError the caller can wrap.
"""

import json
import re
from typing import Optional

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

# Accepts raw control characters inside strings
_LENIENT_DECODER = json.JSONDecoder(strict=False)


def _loads(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return _LENIENT_DECODER.decode(text)


def _candidates(text: str):
    yield text
    match = _JSON_FENCE_RE.search(text)
    if match:
        yield match.group(1).strip()
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        yield text[start:end + 1]


def parse_json_response(text: str) -> dict:
    """Extract a JSON object from LLM response text.

    Raises:
        ValueError: If no JSON object can be recovered.
    """
    text = (text or "").strip()
    if not text:
        raise ValueError("Failed to parse JSON from LLM response: empty response")

    for candidate in _candidates(text):
        try:
            result = _loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(result, dict):
            return result

    raise ValueError(f"Failed to parse JSON from LLM response: {text[:200]}...")


def missing_required_fields(data: dict, schema: Optional[dict]) -> list[str]:
    """Return required top-level keys of ``schema`` that are absent or null in ``data``."""
    if not schema:
        return []
    return [key for key in schema.get("required", []) if data.get(key) is None]


def schema_instructions(schema: dict) -> str:
    """Prompt suffix asking the model for a JSON object matching ``schema``."""
    return (
        "\n\nRespond with a single JSON object only, no prose and no code fences. "
        "It must validate against this JSON schema:\n"
        f"{json.dumps(schema, ensure_ascii=False)}"
    )
