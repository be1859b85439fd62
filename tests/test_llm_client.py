import httpx
import pytest

from prep_panel import llm_client
from prep_panel.errors import ConfigurationError, ParseError, UpstreamError
from prep_panel.llm_client import chat_completion, parse_ai_response
from prep_panel.settings.config import settings

MESSAGES = [{"role": "user", "content": "hi"}]


# ---------- parser ----------

@pytest.mark.parametrize(
    "raw, expected",
    [
        ('{"a": 1, "b": [1, 2]}', {"a": 1, "b": [1, 2]}),
        ('```json\n{"a": 1}\n```', {"a": 1}),
        ('Here you go:\n\n```\n{"topics": []}\n```  \nthanks', {"topics": []}),
        ('  ```json   {"x": "y"}   ```', {"x": "y"}),
    ],
)
def test_parse_ai_response(raw, expected):
    assert parse_ai_response(raw) == expected


def test_parse_ai_response_raises_parse_error_with_raw_text():
    with pytest.raises(ParseError) as exc:
        parse_ai_response("not json and no fences at all")
    assert exc.value.raw_text == "not json and no fences at all"


def test_parse_ai_response_bad_fenced_json():
    with pytest.raises(ParseError):
        parse_ai_response("```json\n{broken\n```")


# ---------- invoker ----------

async def test_chat_completion_posts_model_and_token_budget(model):
    model.reply({"ok": True})
    out = await chat_completion(MESSAGES, model="gpt-test", max_tokens=123)
    assert out == '{"ok": true}'
    sent = model.requests[0]
    assert sent["model"] == "gpt-test"
    assert sent["max_completion_tokens"] == 123
    assert sent["messages"] == MESSAGES


async def test_chat_completion_sends_bearer_key(monkeypatch):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"choices": [{"message": {"content": "{}"}}]})

    monkeypatch.setattr(llm_client, "HTTP_TRANSPORT", httpx.MockTransport(handler))
    await chat_completion(MESSAGES)
    assert seen["auth"] == "Bearer sk-test"


async def test_missing_content_defaults_to_empty_object(monkeypatch):
    def handler(request):
        return httpx.Response(200, json={"choices": []})

    monkeypatch.setattr(llm_client, "HTTP_TRANSPORT", httpx.MockTransport(handler))
    assert await chat_completion(MESSAGES) == "{}"


async def test_rate_limit_surfaces_upstream_status(model):
    for _ in range(settings.LLM_MAX_RETRIES + 1):
        model.reply(None, status=429)
    with pytest.raises(UpstreamError) as exc:
        await chat_completion(MESSAGES)
    assert exc.value.upstream_status == 429
    assert len(model.requests) == settings.LLM_MAX_RETRIES + 1


async def test_transient_status_is_retried(model):
    model.reply(None, status=503)
    model.reply({"fine": 1})
    assert await chat_completion(MESSAGES) == '{"fine": 1}'
    assert len(model.requests) == 2


async def test_client_errors_are_not_retried(model):
    model.reply(None, status=400)
    with pytest.raises(UpstreamError) as exc:
        await chat_completion(MESSAGES)
    assert exc.value.upstream_status == 400
    assert len(model.requests) == 1


async def test_transport_errors_become_upstream_errors(monkeypatch):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    monkeypatch.setattr(llm_client, "HTTP_TRANSPORT", httpx.MockTransport(handler))
    monkeypatch.setattr(settings, "LLM_MAX_RETRIES", 1)
    with pytest.raises(UpstreamError) as exc:
        await chat_completion(MESSAGES)
    assert exc.value.upstream_status is None
    assert len(calls) == 2


async def test_missing_key_is_a_configuration_error(monkeypatch, model):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    with pytest.raises(ConfigurationError):
        await chat_completion(MESSAGES)
    assert model.requests == []
