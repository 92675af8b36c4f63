import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from rulekeeper.ai.conversation_history import ConversationHistory
from rulekeeper.bot.cogs import message_listener
from rulekeeper.rules.errors import IndexNotReadyError
from rulekeeper.util.discord_utils import chunk_message

BOT_USER = SimpleNamespace(id=999)


def _message(content, guild=True, bot_author=False, mentions_bot=True):
    channel = MagicMock()
    channel.id = 10
    channel.send = AsyncMock()
    author = SimpleNamespace(id=20, bot=bot_author, display_name="Sam")
    return SimpleNamespace(
        id=30,
        content=content,
        author=author,
        channel=channel,
        guild=SimpleNamespace(name="Roleplay City") if guild else None,
        mentions=[BOT_USER] if mentions_bot else [],
    )


def _cog(answer="Rule C06.01 applies.", error=None):
    engine = SimpleNamespace(answer=AsyncMock(return_value=answer, side_effect=error))
    bot = SimpleNamespace(user=BOT_USER)
    return message_listener.MessageListenerCog(bot, engine=engine, history=ConversationHistory(4))


def test_setup_registers_cog(monkeypatch):
    captured = {}
    monkeypatch.setattr(message_listener, "LLMEngine", lambda: SimpleNamespace(answer=AsyncMock()))

    message_listener.setup(SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog), user=BOT_USER))

    assert isinstance(captured["cog"], message_listener.MessageListenerCog)


@pytest.mark.asyncio
async def test_mention_is_answered_and_recorded():
    cog = _cog()
    message = _message("<@999> what is C06.01?")

    await cog.on_message(message)

    cog.engine.answer.assert_awaited_once()
    args, kwargs = cog.engine.answer.await_args
    assert args[0] == "what is C06.01?"
    assert kwargs["guild_name"] == "Roleplay City"
    assert kwargs["history"] == []
    message.channel.send.assert_awaited_once_with("Rule C06.01 applies.")
    assert cog.history.get((10, 20))[-1]["content"] == "Rule C06.01 applies."


@pytest.mark.asyncio
async def test_direct_message_without_mention_is_answered():
    cog = _cog()
    message = _message("what is the crew roam limit", guild=False, mentions_bot=False)

    await cog.on_message(message)

    cog.engine.answer.assert_awaited_once()
    assert cog.engine.answer.await_args.kwargs["guild_name"] == ""


@pytest.mark.asyncio
async def test_bot_authors_and_unaddressed_messages_are_ignored():
    cog = _cog()

    await cog.on_message(_message("<@999> hi", bot_author=True))
    await cog.on_message(_message("just chatting", mentions_bot=False))

    cog.engine.answer.assert_not_awaited()


@pytest.mark.asyncio
async def test_bare_mention_gets_usage_hint():
    cog = _cog()
    message = _message("<@!999>")

    await cog.on_message(message)

    cog.engine.answer.assert_not_awaited()
    message.channel.send.assert_awaited_once_with(message_listener.EMPTY_QUESTION_MESSAGE)


@pytest.mark.asyncio
async def test_index_not_ready_reports_initializing():
    cog = _cog(error=IndexNotReadyError())
    message = _message("<@999> roaming?")

    await cog.on_message(message)

    message.channel.send.assert_awaited_once_with(message_listener.INITIALIZING_MESSAGE)
    assert cog.history.is_new((10, 20))


@pytest.mark.asyncio
async def test_unexpected_error_sends_generic_reply():
    cog = _cog(error=RuntimeError("boom"))
    message = _message("<@999> roaming?")

    await cog.on_message(message)

    message.channel.send.assert_awaited_once_with(message_listener.GENERIC_MESSAGE)


@pytest.mark.asyncio
async def test_long_answers_are_chunked():
    long_answer = ("word " * 900).strip()
    cog = _cog(answer=long_answer)
    message = _message("<@999> explain everything")

    await cog.on_message(message)

    sent = [call.args[0] for call in message.channel.send.await_args_list]
    assert len(sent) == 3
    assert all(len(chunk) <= 2000 for chunk in sent)
    assert " ".join(sent) == long_answer


def test_chunk_message_hard_cuts_unbroken_text():
    chunks = chunk_message("x" * 4500)

    assert [len(chunk) for chunk in chunks] == [2000, 2000, 500]
    assert chunk_message("   ") == []
