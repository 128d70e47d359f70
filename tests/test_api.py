import pytest
import requests

from region_translator.api import (
    ChatClient,
    LlmTranslator,
    TranslatorError,
    build_system_prompt,
)


class FakeResponse:
    def __init__(self, payload=None, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.posts = []

    def post(self, url, json, headers, timeout):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def reply(content):
    return FakeResponse({"choices": [{"message": {"content": content}}]})


def test_complete_posts_to_chat_completions():
    session = FakeSession(reply("  Hola  "))
    client = ChatClient("https://example.test/v1/", "secret", timeout=5, session=session)

    assert client.complete("model-x", [{"role": "user", "content": "Hi"}], 0.3, 100) == "Hola"

    post = session.posts[0]
    assert post["url"] == "https://example.test/v1/chat/completions"
    assert post["headers"]["Authorization"] == "Bearer secret"
    assert post["json"]["model"] == "model-x"
    assert post["json"]["temperature"] == 0.3
    assert post["json"]["max_tokens"] == 100
    assert post["timeout"] == 5


def test_optional_fields_are_omitted():
    session = FakeSession(reply("ok"))
    ChatClient("https://example.test/v1", "", session=session).complete("m", [])
    post = session.posts[0]
    assert "temperature" not in post["json"]
    assert "Authorization" not in post["headers"]


def test_transport_error_raises_translator_error():
    session = FakeSession(error=requests.ConnectionError("refused"))
    with pytest.raises(TranslatorError):
        ChatClient(session=session).complete("m", [])


def test_http_error_raises_translator_error():
    session = FakeSession(FakeResponse({}, status=401))
    with pytest.raises(TranslatorError):
        ChatClient(session=session).complete("m", [])


@pytest.mark.parametrize("payload", [None, {}, {"choices": []}, {"choices": [{}]}])
def test_malformed_response_raises_translator_error(payload):
    session = FakeSession(FakeResponse(payload))
    with pytest.raises(TranslatorError):
        ChatClient(session=session).complete("m", [])


def test_null_content_is_empty_string():
    session = FakeSession(reply(None))
    assert ChatClient(session=session).complete("m", []) == ""


def test_vietnamese_gets_tone_guided_prompt():
    prompt = build_system_prompt("Vietnamese")
    assert "Tiếng Việt" in prompt
    assert "natural expressions" in prompt


def test_generic_prompt_names_target():
    assert "to German" in build_system_prompt("German")


class TestLlmTranslator:
    def test_sends_system_and_user_messages(self):
        session = FakeSession(reply("Hola mundo."))
        translator = LlmTranslator(ChatClient(session=session), "text-model")

        assert translator.translate("Hello world.", "Spanish") == "Hola mundo."

        body = session.posts[0]["json"]
        assert body["model"] == "text-model"
        assert body["messages"][0]["role"] == "system"
        assert "Spanish" in body["messages"][0]["content"]
        assert body["messages"][1] == {"role": "user", "content": "Hello world."}

    def test_empty_translation_raises(self):
        session = FakeSession(reply(""))
        with pytest.raises(TranslatorError):
            LlmTranslator(ChatClient(session=session), "m").translate("Hello.", "Spanish")
