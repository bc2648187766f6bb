from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any

from google import genai
from google.genai import types

from app.core.config import settings

_LOG = logging.getLogger("app.ai")


class AiUnavailableError(Exception):
    pass


class ModelOutputError(Exception):
    pass


@lru_cache(maxsize=4)
def _client_for_key(api_key: str, timeout_ms: int) -> genai.Client:
    return genai.Client(api_key=api_key, http_options=types.HttpOptions(timeout=timeout_ms))


def get_genai_client() -> genai.Client:
    api_key = str(settings.GEMINI_API_KEY or "").strip()
    if not api_key:
        raise AiUnavailableError("Gemini API key (GEMINI_API_KEY) missing")
    return _client_for_key(api_key, int(settings.GEMINI_TIMEOUT_SECONDS) * 1000)


def generate_text(prompt: str) -> str:
    client = get_genai_client()
    try:
        response = client.models.generate_content(model=settings.GEMINI_MODEL, contents=prompt)
    except Exception as exc:
        raise AiUnavailableError(f"Gemini request failed: {exc}") from exc
    return str(response.text or "")


def extract_json_object(text: str) -> Any:
    """Parse the outermost `{...}` span of a model reply."""
    raw = str(text or "").strip()
    first = raw.find("{")
    last = raw.rfind("}")
    if first == -1 or last == -1:
        raise ModelOutputError("Model did not return JSON")
    try:
        return json.loads(raw[first : last + 1])
    except ValueError as exc:
        raise ModelOutputError("Failed to parse model JSON") from exc


def generate_optional_text(prompt: str) -> str | None:
    """Best-effort generation; returns None when the model is unavailable."""
    try:
        return generate_text(prompt)
    except AiUnavailableError as exc:
        _LOG.warning("Narrative generation skipped: %s", exc)
        return None
