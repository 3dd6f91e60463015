# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

from openai import OpenAIError

from constants import (
    CONVERSATION_EMPTY_REPLY,
    CONVERSATION_FALLBACK_FOLLOW_UP,
    CONVERSATION_FALLBACK_PLATFORM,
)
from services.coaching import CoachingService, local_rewrites, parse_rewrite
from services.conversation import ConversationService, canned_reply
from services.prompts import COACHING_PROMPTS, CONVERSATION_PROMPT_V1
from services.results import Fallback, Generated

from fakes import FakeOpenAI


SAMPLE = "This is a sample that demonstrates my speaking"


# ---------------------------------------------------------------------
# Local transforms
# ---------------------------------------------------------------------

def test_local_accent_rewrite_strips_filler_words():
    rewrites = local_rewrites("Um I like think uh this works")

    assert rewrites.accent == "I think this works"


def test_local_accent_rewrite_keeps_input_when_only_fillers():
    assert local_rewrites("um uh").accent == "um uh"


def test_local_language_and_executive_substitutions():
    rewrites = local_rewrites(SAMPLE)

    assert rewrites.language == "This exemplifies a sample that showcases my speaking"
    assert rewrites.executive == (
        "This represents a professional communication that demonstrates my speaking"
    )


def test_parse_rewrite_variants():
    assert parse_rewrite('{"message": "Polished."}', "orig") == "Polished."
    assert parse_rewrite("not json at all", "orig") == "not json at all"
    assert parse_rewrite("", "orig") == "orig"
    assert parse_rewrite(None, "orig") == "orig"
    assert parse_rewrite('{"message": ""}', "orig") == "orig"
    assert parse_rewrite('{"text": "x"}', "orig") == "orig"
    assert parse_rewrite("[1, 2]", "orig") == "orig"


# ---------------------------------------------------------------------
# CoachingService
# ---------------------------------------------------------------------

def test_rewrite_asks_each_coach_in_json_mode():
    client = FakeOpenAI()
    service = CoachingService(client=client, model="gpt-test")

    result = asyncio.run(service.rewrite("i has a question"))

    assert isinstance(result, Generated)
    assert result.is_fallback is False
    assert result.value.to_dict() == {
        "accent": "polished: i has a question",
        "language": "polished: i has a question",
        "executive": "polished: i has a question",
    }

    assert len(client.chat_calls) == 3
    system_prompts = {call["messages"][0]["content"] for call in client.chat_calls}
    assert system_prompts == set(COACHING_PROMPTS.values())
    for call in client.chat_calls:
        assert call["model"] == "gpt-test"
        assert call["response_format"] == {"type": "json_object"}


def test_rewrite_without_client_uses_local_transforms():
    service = CoachingService(client=None, model="gpt-test")

    result = asyncio.run(service.rewrite(SAMPLE))

    assert isinstance(result, Fallback)
    assert result.reason == "no_client"
    assert result.value == local_rewrites(SAMPLE)


def test_rewrite_provider_failure_falls_back():
    client = FakeOpenAI(fail_with=OpenAIError("boom"))
    service = CoachingService(client=client, model="gpt-test")

    result = asyncio.run(service.rewrite(SAMPLE))

    assert result.is_fallback is True
    assert result.reason == "provider_error:OpenAIError"
    assert result.value == local_rewrites(SAMPLE)


def test_rewrite_without_choices_falls_back():
    service = CoachingService(client=FakeOpenAI(empty_choices=True), model="gpt-test")

    result = asyncio.run(service.rewrite(SAMPLE))

    assert isinstance(result, Fallback)
    assert result.reason == "provider_error:IndexError"
    assert result.value == local_rewrites(SAMPLE)


# ---------------------------------------------------------------------
# ConversationService
# ---------------------------------------------------------------------

def test_reply_uses_conversation_prompt():
    client = FakeOpenAI()
    service = ConversationService(client=client, model="gpt-chat")

    result = asyncio.run(service.reply("Can you help?"))

    assert result == Generated("reply to: Can you help?")
    call = client.chat_calls[0]
    assert call["messages"][0] == {"role": "system", "content": CONVERSATION_PROMPT_V1}
    assert "response_format" not in call


def test_empty_reply_is_replaced():
    service = ConversationService(client=FakeOpenAI(chat_reply=lambda _: None), model="gpt-chat")

    result = asyncio.run(service.reply("hello"))

    assert result.value == CONVERSATION_EMPTY_REPLY
    assert result.is_fallback is False


def test_canned_reply_mentions_platform_for_samples():
    assert canned_reply("this is a sample").endswith(CONVERSATION_FALLBACK_PLATFORM)
    assert canned_reply("anything else").endswith(CONVERSATION_FALLBACK_FOLLOW_UP)


def test_reply_provider_failure_falls_back():
    service = ConversationService(client=FakeOpenAI(fail_with=OpenAIError("down")), model="m")

    result = asyncio.run(service.reply("anything else"))

    assert isinstance(result, Fallback)
    assert result.value == canned_reply("anything else")


def test_reply_without_choices_falls_back():
    service = ConversationService(client=FakeOpenAI(empty_choices=True), model="m")

    result = asyncio.run(service.reply("anything else"))

    assert isinstance(result, Fallback)
    assert result.reason == "provider_error:IndexError"
    assert result.value == canned_reply("anything else")
