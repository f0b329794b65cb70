from __future__ import annotations

from types import SimpleNamespace

import pytest

from hireflow.llm.providers import LLMProvider, ProviderConfig, ProviderPool, responses_unsupported
from hireflow.llm.writer import CoverLetterWriter, applicant_background
from hireflow.types import ApplicantProfile, EducationEntry, ExperienceEntry, JobDetails


class DummyAPIError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FakeResponsePayload:
    def __init__(self, *, output_text: str = "", raw: dict | None = None):
        self.output_text = output_text
        self._raw = raw or {}

    def model_dump(self) -> dict:
        return self._raw


class FakeChatPayload:
    def __init__(self, *, content: str, raw: dict | None = None):
        self.choices = [SimpleNamespace(message=SimpleNamespace(content=content))]
        self._raw = raw or {}

    def model_dump(self) -> dict:
        return self._raw


class FakeResponsesAPI:
    def __init__(self, fn):
        self._fn = fn

    def create(self, **kwargs):
        return self._fn(**kwargs)


class FakeChatCompletionsAPI:
    def __init__(self, fn):
        self._fn = fn

    def create(self, **kwargs):
        return self._fn(**kwargs)


class FakeChatAPI:
    def __init__(self, fn):
        self.completions = FakeChatCompletionsAPI(fn)


class FakeClient:
    def __init__(self, *, responses_fn, chat_fn):
        self.responses = FakeResponsesAPI(responses_fn)
        self.chat = FakeChatAPI(chat_fn)


def _provider_with_fake_client(fake_client: FakeClient) -> LLMProvider:
    provider = LLMProvider(
        ProviderConfig(
            name="openai",
            base_url="http://localhost:9999/v1",
            api_key="dummy",
            model="local-model",
            timeout_sec=5,
        )
    )
    provider.client = fake_client
    return provider


def test_complete_text_uses_responses_when_available() -> None:
    chat_called = {"value": False}

    def responses_fn(**kwargs):
        return FakeResponsePayload(output_text="RESP_OK", raw={"id": "resp_1"})

    def chat_fn(**kwargs):
        chat_called["value"] = True
        return FakeChatPayload(content="CHAT_OK", raw={"id": "chat_1"})

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=chat_fn))
    result = provider.complete_text(model="gpt-5.2-xhigh", prompt="ping")

    assert result.content == "RESP_OK"
    assert result.raw["api_path"] == "responses"
    assert chat_called["value"] is False


def test_complete_text_falls_back_to_chat_on_responses_not_found() -> None:
    def responses_fn(**kwargs):
        raise DummyAPIError("Not found", status_code=404)

    def chat_fn(**kwargs):
        return FakeChatPayload(content="CHAT_OK", raw={"id": "chat_1"})

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=chat_fn))
    result = provider.complete_text(model="gpt-5.2-xhigh", prompt="ping")

    assert result.content == "CHAT_OK"
    assert result.raw["api_path"] == "chat_completions"


def test_complete_text_raises_when_fallback_path_also_fails() -> None:
    def responses_fn(**kwargs):
        raise DummyAPIError("Not found", status_code=404)

    def chat_fn(**kwargs):
        raise RuntimeError("chat path failed")

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=chat_fn))
    with pytest.raises(RuntimeError, match="chat path failed"):
        provider.complete_text(model="gpt-5.2-xhigh", prompt="ping")


def test_complete_text_uses_configured_model_by_default() -> None:
    seen: dict = {}

    def responses_fn(**kwargs):
        seen.update(kwargs)
        return FakeResponsePayload(output_text="RESP_OK")

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=lambda **kwargs: None))
    provider.complete_text("ping")

    assert seen["model"] == "local-model"


def test_non_404_errors_are_not_treated_as_missing_responses_api() -> None:
    assert responses_unsupported(DummyAPIError("Not found", status_code=404))
    assert responses_unsupported(RuntimeError("404 page not found"))
    assert not responses_unsupported(DummyAPIError("rate limited", status_code=429))
    assert not responses_unsupported(RuntimeError(""))


def test_provider_pool_orders_openai_before_local() -> None:
    settings = SimpleNamespace(
        openai_api_key="sk-test",
        openai_base_url="http://localhost:9999/v1",
        openai_model_writer="gpt-4o-mini",
        openai_timeout_sec=5,
        local_llm_enabled=True,
        local_llm_base_url="http://localhost:11434/v1",
        local_llm_api_key="local",
        local_llm_model="qwen",
        local_llm_timeout_sec=5,
    )
    pool = ProviderPool(settings)

    names = [provider.config.name for provider in pool.available()]

    assert names == ["openai", "local"]
    assert pool.available()[0] is pool.available()[0]


def test_provider_pool_is_empty_without_configuration() -> None:
    settings = SimpleNamespace(openai_api_key="", local_llm_enabled=False)
    assert ProviderPool(settings).available() == []


class StaticPool:
    def __init__(self, *providers):
        self.providers = list(providers)

    def available(self):
        return self.providers


def _profile() -> ApplicantProfile:
    return ApplicantProfile(
        name="Jane Doe",
        email="jane@example.com",
        current_title="Engineer",
        current_company="Initech",
        years_experience="6",
        education=(EducationEntry(degree="BSc", major="Computer Science", school="MIT"),),
        experience=(ExperienceEntry(title="Engineer", company="Initech", current=True),),
    )


def test_cover_letter_prompt_includes_job_and_background() -> None:
    writer = CoverLetterWriter(settings=SimpleNamespace(), pool=StaticPool())
    prompt = writer.build_prompt(_profile(), JobDetails(title="Backend Engineer", company="Acme", description="Build APIs"))

    assert "Job title: Backend Engineer" in prompt
    assert "Company: Acme" in prompt
    assert "Applicant name: Jane Doe" in prompt
    assert "Education: BSc Computer Science at MIT." in prompt
    assert "6 years of experience." in prompt


def test_applicant_background_has_fallback_text() -> None:
    assert applicant_background(ApplicantProfile(name="A", email="a@example.com")) == "No background details provided."


def test_cover_letter_writer_falls_through_failing_providers() -> None:
    def broken(**kwargs):
        raise DummyAPIError("server error", status_code=500)

    failing = _provider_with_fake_client(FakeClient(responses_fn=broken, chat_fn=broken))
    working = _provider_with_fake_client(
        FakeClient(responses_fn=lambda **kwargs: FakeResponsePayload(output_text="  Dear Acme,  "), chat_fn=broken)
    )
    writer = CoverLetterWriter(settings=SimpleNamespace(), pool=StaticPool(failing, working))

    assert writer.write(_profile(), JobDetails()) == "Dear Acme,"


def test_cover_letter_writer_returns_empty_when_no_provider_answers() -> None:
    writer = CoverLetterWriter(settings=SimpleNamespace(), pool=StaticPool())
    assert writer.write(_profile(), JobDetails()) == ""
