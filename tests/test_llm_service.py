import pytest

from app.core.errors import LanguageModelError
from app.services import llm_service
from app.services.llm_service import (
    GeminiLanguageModel, OpenRouterLanguageModel, build_language_model
)


class FakeResp:
    def __init__(self, status_code=200, text="", json_data=None):
        self.status_code = status_code
        self.text = text
        self._json = json_data

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


def make_fake_client_factory(responses, sent=None):
    # responses: iterable of FakeResp
    it = iter(responses)

    class FakeClient:
        def __init__(self, timeout=None):
            self._timeout = timeout

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def post(self, url, headers=None, json=None):
            if sent is not None:
                sent.append(json)
            return next(it)

    return FakeClient


def reply(content, finish_reason="stop"):
    return FakeResp(json_data={"choices": [{"message": {"content": content}, "finish_reason": finish_reason}]})


MESSAGES = [{"role": "user", "content": "Hi"}]


@pytest.mark.asyncio
async def test_openrouter_model_fallback_order(monkeypatch):
    sent = []
    r1 = FakeResp(status_code=429, text="")
    r2 = reply("Reply from model 2")
    monkeypatch.setattr("app.services.llm_service.httpx.AsyncClient", make_fake_client_factory([r1, r2], sent))

    llm = OpenRouterLanguageModel(api_key="fakekey", models=["model-a", "model-b"])
    assert await llm.complete("system", MESSAGES) == "Reply from model 2"
    assert [p["model"] for p in sent] == ["model-a", "model-b"]
    assert sent[0]["messages"][0] == {"role": "system", "content": "system"}


@pytest.mark.asyncio
async def test_openrouter_json_mode_requests_json_object(monkeypatch):
    sent = []
    monkeypatch.setattr(
        "app.services.llm_service.httpx.AsyncClient", make_fake_client_factory([reply("{}")], sent)
    )
    llm = OpenRouterLanguageModel(api_key="fakekey", models=["model-a"])
    await llm.complete("system", MESSAGES, json_mode=True)
    assert sent[0]["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_openrouter_skips_truncated_and_unparseable_replies(monkeypatch):
    r1 = reply('{"firstName": ', finish_reason="length")
    r2 = FakeResp(status_code=200, text="Plain text reply from model")
    r3 = reply("   ")
    r4 = reply("final answer")
    monkeypatch.setattr("app.services.llm_service.httpx.AsyncClient", make_fake_client_factory([r1, r2, r3, r4]))

    llm = OpenRouterLanguageModel(api_key="fakekey", models=["a", "b", "c", "d"])
    assert await llm.complete("system", MESSAGES) == "final answer"


@pytest.mark.asyncio
async def test_openrouter_all_models_fail(monkeypatch):
    r1 = FakeResp(status_code=429, text="")
    r2 = FakeResp(status_code=502, text="Bad gateway")
    r3 = FakeResp(status_code=503, text="Service unavailable")
    monkeypatch.setattr("app.services.llm_service.httpx.AsyncClient", make_fake_client_factory([r1, r2, r3]))

    llm = OpenRouterLanguageModel(api_key="fakekey", models=["a", "b", "c"])
    with pytest.raises(LanguageModelError):
        await llm.complete("system", MESSAGES)


@pytest.mark.asyncio
async def test_openrouter_without_key():
    with pytest.raises(LanguageModelError):
        await OpenRouterLanguageModel(api_key="", models=["a"]).complete("system", MESSAGES)


class FakeGeminiModel:
    instances = []

    def __init__(self, model, system_instruction=None):
        self.model = model
        self.system_instruction = system_instruction
        self.contents = None
        FakeGeminiModel.instances.append(self)

    def generate_content(self, contents, generation_config=None):
        self.contents = contents
        self.generation_config = generation_config

        class Response:
            text = ' {"income": {"value": 1, "confidence": 0.9}} '

        return Response()


@pytest.mark.asyncio
async def test_gemini_maps_roles_and_strips_text(monkeypatch):
    FakeGeminiModel.instances = []
    monkeypatch.setattr(llm_service.genai, "configure", lambda **kwargs: None)
    monkeypatch.setattr(llm_service.genai, "GenerativeModel", FakeGeminiModel)

    llm = GeminiLanguageModel(api_key="fakekey", model="gemini-test")
    messages = [{"role": "assistant", "content": "Hello"}, {"role": "user", "content": "Hi"}]
    text = await llm.complete("system", messages, json_mode=True)

    assert text == '{"income": {"value": 1, "confidence": 0.9}}'
    model = FakeGeminiModel.instances[0]
    assert model.model == "gemini-test"
    assert model.system_instruction == "system"
    assert [c["role"] for c in model.contents] == ["model", "user"]
    assert model.generation_config == {"response_mime_type": "application/json"}


@pytest.mark.asyncio
async def test_gemini_errors_are_wrapped(monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("quota exceeded")

    monkeypatch.setattr(llm_service.genai, "configure", lambda **kwargs: None)
    monkeypatch.setattr(llm_service.genai, "GenerativeModel", explode)

    with pytest.raises(LanguageModelError):
        await GeminiLanguageModel(api_key="fakekey").complete("system", MESSAGES)


def test_build_language_model_providers():
    assert isinstance(build_language_model("openrouter"), OpenRouterLanguageModel)
    with pytest.raises(ValueError):
        build_language_model("carrier-pigeon")
