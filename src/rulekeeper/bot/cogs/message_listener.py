"""Message listener Cog for RuleKeeper.

Answers rule questions asked by mentioning the bot in a guild channel or by
direct message. Replies are plain text split to Discord's message limit.
"""

import discord
from discord.ext import commands

from rulekeeper.ai.conversation_history import ConversationHistory
from rulekeeper.ai.llm_engine import GENERIC_MESSAGE, LLMEngine
from rulekeeper.configuration.app_configuration import app_config
from rulekeeper.rules.errors import IndexNotReadyError
from rulekeeper.util import discord_utils
from rulekeeper.util.logger import get_logger

logger = get_logger("message_listener_cog")

INITIALIZING_MESSAGE = "The rules system is initializing. Please try again in a moment."
EMPTY_QUESTION_MESSAGE = "Ask me about any community or crew rule, for example `what is C06.01?`"


class MessageListenerCog(commands.Cog):
    """Cog responsible for answering rule questions in messages."""

    def __init__(self, discord_bot_instance, engine: LLMEngine | None = None, history: ConversationHistory | None = None):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        engine:
            Completion engine; built from configuration when omitted.
        history:
            Conversation store; sized from the ``conversation`` section when omitted.
        """
        self.bot = discord_bot_instance
        self.engine = engine or LLMEngine()
        self.history = history if history is not None else ConversationHistory(
            app_config.history_length, app_config.max_conversations
        )
        logger.info("Message listener cog loaded")

    def _is_addressed_to_bot(self, message: discord.Message) -> bool:
        if message.guild is None:
            return True
        bot_user = getattr(self.bot, "user", None)
        return bot_user is not None and bot_user in message.mentions

    def _extract_question(self, message: discord.Message) -> str:
        content = message.content or ""
        bot_user = getattr(self.bot, "user", None)
        if bot_user is not None:
            for mention in (f"<@{bot_user.id}>", f"<@!{bot_user.id}>"):
                content = content.replace(mention, " ")
        return " ".join(content.split())

    async def _send_chunks(self, message: discord.Message, text: str) -> None:
        for chunk in discord_utils.chunk_message(text):
            await message.channel.send(chunk)

    @commands.Cog.listener(name='on_message')
    async def on_message(self, message: discord.Message):
        """
        Answer a question addressed to the bot.

        Bot authors and guild messages that do not mention the bot are
        ignored. Each answer is recorded in the per-channel, per-user
        conversation history.
        """
        if discord_utils.is_bot_author(message.author):
            return
        if not self._is_addressed_to_bot(message):
            return

        question = self._extract_question(message)
        if not question:
            await message.channel.send(EMPTY_QUESTION_MESSAGE)
            return

        key = (message.channel.id, message.author.id)
        logger.debug(f"Question from {message.author}: {question[:80]}")

        try:
            async with message.channel.typing():
                answer = await self.engine.answer(
                    question,
                    history=self.history.get(key),
                    user_name=getattr(message.author, "display_name", str(message.author)),
                    guild_name=message.guild.name if message.guild else "",
                )
        except IndexNotReadyError:
            await message.channel.send(INITIALIZING_MESSAGE)
            return
        except Exception as e:
            logger.error(f"Error answering message {message.id}: {e}", exc_info=True)
            await message.channel.send(GENERIC_MESSAGE)
            return

        self.history.record_exchange(key, question, answer)
        await self._send_chunks(message, answer)


def setup(discord_bot_instance):
    """
    Register the MessageListenerCog with the bot.

    Parameters
    ----------
    discord_bot_instance:
        The Discord bot instance to add this cog to.
    """
    cog = MessageListenerCog(discord_bot_instance)
    add_cog = getattr(discord_bot_instance, "add_cog", None)
    if add_cog is None:
        return cog
    add_cog(cog)
    return cog
