from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import google.generativeai as genai

from .errors import VisionError

DEFAULT_VISION_MODEL = "gemini-2.0-flash"
VISION_TIMEOUT_SEC = 20

STICKER_PROMPT = """Analyze this image for a sticker/meme database.
Task: Determine if this is a usable "sticker" (expressive, meme, character) or just a random screenshot/photo.

Output JSON ONLY:
{
  "is_sticker": boolean,
  "emotion": "string (e.g., happy, smug, angry, crying) or null",
  "keywords": ["tag1", "tag2"]
}"""

FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


@dataclass
class StickerVerdict:
    is_sticker: bool
    emotion: Optional[str] = None
    keywords: List[str] = field(default_factory=list)


def parse_model_json(text: str) -> Optional[Dict[str, Any]]:
    """Pull the JSON object out of free-form model text, or ``None`` if there isn't one."""
    clean = FENCE_RE.sub("", text or "").strip()
    first = clean.find("{")
    last = clean.rfind("}")
    if first != -1 and last != -1:
        clean = clean[first : last + 1]
    try:
        value = json.loads(clean)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def verdict_from_payload(payload: Dict[str, Any]) -> StickerVerdict:
    emotion = payload.get("emotion")
    keywords = payload.get("keywords")
    return StickerVerdict(
        is_sticker=bool(payload.get("is_sticker")),
        emotion=str(emotion) if emotion not in (None, "") else None,
        keywords=[str(k) for k in keywords if k] if isinstance(keywords, list) else [],
    )


class GeminiVisionClient:
    """Sticker classification through the ``google.generativeai`` SDK.

    ``timeout`` bounds each ``generate_content`` call so a stalled request
    cannot outlive the caller's own per-item deadline by much.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_VISION_MODEL,
        base_url: Optional[str] = None,
        timeout: float = VISION_TIMEOUT_SEC,
    ):
        options = {"api_endpoint": base_url} if base_url else None
        genai.configure(api_key=api_key, client_options=options)
        self.model_name = model
        self.timeout = timeout
        self.model = genai.GenerativeModel(model)

    def generate(self, image_bytes: bytes, mime_type: str, prompt: str = STICKER_PROMPT) -> str:
        # Gemini accepts: [text, {"mime_type": ..., "data": ...}]
        content = [prompt, {"mime_type": mime_type, "data": image_bytes}]
        try:
            response = self.model.generate_content(content, request_options={"timeout": self.timeout})
            return (response.text or "").strip()
        except Exception as exc:
            raise VisionError(f"Vision request failed ({self.model_name}): {exc}") from exc

    def classify(self, image_bytes: bytes, mime_type: str) -> StickerVerdict:
        text = self.generate(image_bytes, mime_type)
        payload = parse_model_json(text)
        if payload is None:
            raise VisionError(f"JSON parse error. Raw: {text[:50]}...")
        return verdict_from_payload(payload)
