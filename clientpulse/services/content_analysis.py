import base64
import json
import logging
import re
from dataclasses import dataclass

import httpx

from clientpulse.core.config import Settings, get_settings
from clientpulse.services.errors import ContentAnalysisError, UnsupportedImageType

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png"}

ANALYSIS_PROMPT = """You are reviewing a screenshot or document image about a sales client.
Count the business keywords that signal buying intent (proposal, contract, budget,
deadline, urgent, pricing, renewal, purchase, meeting, demo, ...), judge the overall
sentiment towards working with us, and rate how urgently the client should be handled.

Respond ONLY with valid JSON (no markdown):
{"priority": "low"|"medium"|"high", "keywordsCount": <integer>, "sentiment": "low"|"mid"|"high"}
"""


@dataclass
class ContentAnalysis:
    priority: str
    keywords_count: int
    sentiment: str


def check_image_type(mime_type: str | None) -> None:
    if (mime_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise UnsupportedImageType(
            f"Unsupported image type: {mime_type}",
            user_message="Please upload only image files (JPG, JPEG or PNG).",
        )


def parse_analysis(content: str | None) -> ContentAnalysis:
    if not isinstance(content, str):
        raise ContentAnalysisError(f"Analysis response has no text content: {content!r}")
    content = re.sub(r"^```(?:json)?\s*", "", content.strip(), flags=re.IGNORECASE)
    content = re.sub(r"```$", "", content.strip())
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ContentAnalysisError(f"Analysis response is not JSON: {content[:200]}") from exc
    if not isinstance(payload, dict):
        raise ContentAnalysisError(f"Analysis response is not a JSON object: {content[:200]}")

    priority = str(payload.get("priority", "")).lower()
    if priority not in {"low", "medium", "high"}:
        priority = "medium"

    sentiment = str(payload.get("sentiment", "")).lower()
    sentiment = {"medium": "mid", "neutral": "mid", "positive": "high", "negative": "low"}.get(sentiment, sentiment)
    if sentiment not in {"low", "mid", "high"}:
        sentiment = "mid"

    try:
        keywords_count = max(0, int(payload.get("keywordsCount", payload.get("keywords_count", 0)) or 0))
    except (TypeError, ValueError):
        keywords_count = 0

    return ContentAnalysis(priority=priority, keywords_count=keywords_count, sentiment=sentiment)


def analyze_image(
    data: bytes,
    mime_type: str,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
) -> ContentAnalysis:
    settings = settings or get_settings()
    check_image_type(mime_type)
    if not data:
        raise ContentAnalysisError("Empty image upload")
    if len(data) > settings.max_image_bytes:
        raise ContentAnalysisError(f"Image exceeds {settings.max_image_bytes} bytes")
    if not settings.openai_api_key:
        raise ContentAnalysisError("OpenAI API key is not configured", user_message="Image analysis is not configured.")

    image_url = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
    body = {
        "model": settings.openai_model,
        "temperature": 0,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": ANALYSIS_PROMPT},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }
        ],
    }

    http = client or httpx.Client(timeout=settings.openai_timeout)
    try:
        resp = http.post(OPENAI_CHAT_URL, headers={"Authorization": f"Bearer {settings.openai_api_key}"}, json=body)
    except httpx.HTTPError as exc:
        raise ContentAnalysisError(f"Image analysis request failed: {exc}") from exc
    finally:
        if client is None:
            http.close()

    if resp.status_code != 200:
        logger.warning("OpenAI image analysis error %s: %s", resp.status_code, resp.text[:200])
        raise ContentAnalysisError(f"Image analysis failed with status {resp.status_code}")

    try:
        content = resp.json()["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise ContentAnalysisError("Unexpected image analysis response") from exc

    analysis = parse_analysis(content)
    logger.info(
        "Image analysed: priority=%s keywords=%s sentiment=%s",
        analysis.priority,
        analysis.keywords_count,
        analysis.sentiment,
    )
    return analysis
