from types import SimpleNamespace

import pytest

from ideacal.agents.idea_prompts import SYSTEM_INSTRUCTIONS
from ideacal.agents.provider import OpenAITextProvider, _build_client
from ideacal.specs.common.errors import ConfigurationError


class _Completions:
    def __init__(self, content) -> None:
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.content is None:
            return SimpleNamespace(choices=[])
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def _client(content):
    completions = _Completions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_complete_sends_system_and_user_messages() -> None:
    client, completions = _client('  {"title": "T"}  ')

    text = OpenAITextProvider(client).complete(
        prompt="make an idea", model="gpt-x", temperature=0.2, max_output_tokens=100, timeout=5
    )

    assert text == '{"title": "T"}'
    assert completions.kwargs["model"] == "gpt-x"
    assert completions.kwargs["timeout"] == 5
    assert completions.kwargs["max_tokens"] == 100
    assert completions.kwargs["messages"] == [
        {"role": "system", "content": SYSTEM_INSTRUCTIONS},
        {"role": "user", "content": "make an idea"},
    ]


def test_no_choices_is_empty_text() -> None:
    client, _ = _client(None)

    assert OpenAITextProvider(client).complete(prompt="p", model="m") == ""


def test_unconfigured_environment_raises(monkeypatch) -> None:
    for name in ("AZURE_OPENAI_ENDPOINT", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(ConfigurationError):
        _build_client()
