import json

import httpx
import pytest

from clientpulse.core.config import Settings
from clientpulse.services.content_analysis import (
    OPENAI_CHAT_URL,
    analyze_image,
    check_image_type,
    parse_analysis,
)
from clientpulse.services.errors import ContentAnalysisError, UnsupportedImageType


def _settings(api_key="sk-test", max_bytes=1024):
    settings = Settings()
    settings.openai_api_key = api_key
    settings.openai_model = "gpt-4o-mini"
    settings.max_image_bytes = max_bytes
    return settings


def _chat_reply(content: str | None) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.mark.parametrize("mime", ["image/jpeg", "image/jpg", "image/png", "IMAGE/PNG"])
def test_accepts_jpeg_and_png(mime):
    check_image_type(mime)


@pytest.mark.parametrize("mime", ["image/gif", "application/pdf", "", None])
def test_rejects_other_types(mime):
    with pytest.raises(UnsupportedImageType):
        check_image_type(mime)


def test_parse_analysis_strips_fences_and_normalises():
    result = parse_analysis('```json\n{"priority": "HIGH", "keywordsCount": "4", "sentiment": "positive"}\n```')
    assert (result.priority, result.keywords_count, result.sentiment) == ("high", 4, "high")


def test_parse_analysis_defaults_unknown_values():
    result = parse_analysis('{"priority": "urgent", "keywordsCount": -3, "sentiment": "meh"}')
    assert (result.priority, result.keywords_count, result.sentiment) == ("medium", 0, "mid")


def test_parse_analysis_rejects_prose():
    with pytest.raises(ContentAnalysisError):
        parse_analysis("The client seems keen.")


def test_analyze_image_posts_data_url_and_parses_reply():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_chat_reply('{"priority": "low", "keywordsCount": 2, "sentiment": "mid"}'))

    http = httpx.Client(transport=httpx.MockTransport(handler))
    result = analyze_image(b"pngbytes", "image/png", settings=_settings(), client=http)

    assert (result.priority, result.keywords_count, result.sentiment) == ("low", 2, "mid")
    assert seen["url"] == OPENAI_CHAT_URL
    assert seen["auth"] == "Bearer sk-test"
    parts = seen["body"]["messages"][0]["content"]
    assert parts[1]["image_url"]["url"].startswith("data:image/png;base64,")


def test_analyze_image_wraps_upstream_errors():
    http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")))
    with pytest.raises(ContentAnalysisError):
        analyze_image(b"pngbytes", "image/png", settings=_settings(), client=http)


def test_analyze_image_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    http = httpx.Client(transport=httpx.MockTransport(handler))
    with pytest.raises(ContentAnalysisError):
        analyze_image(b"pngbytes", "image/png", settings=_settings(), client=http)


def test_analyze_image_needs_api_key():
    with pytest.raises(ContentAnalysisError) as exc:
        analyze_image(b"pngbytes", "image/png", settings=_settings(api_key=""))
    assert exc.value.user_message == "Image analysis is not configured."


def test_analyze_image_enforces_size_limit():
    with pytest.raises(ContentAnalysisError):
        analyze_image(b"x" * 2048, "image/png", settings=_settings(max_bytes=1024))


@pytest.mark.parametrize("content", ['"high"', '["high"]', "42", "null", None])
def test_analyze_image_rejects_replies_that_are_not_objects(content):
    http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=_chat_reply(content))))
    with pytest.raises(ContentAnalysisError):
        analyze_image(b"pngbytes", "image/png", settings=_settings(), client=http)


def test_parse_analysis_rejects_non_object_json():
    with pytest.raises(ContentAnalysisError):
        parse_analysis('["high"]')
    with pytest.raises(ContentAnalysisError):
        parse_analysis(None)
