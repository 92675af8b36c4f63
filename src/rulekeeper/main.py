"""
RuleKeeper Discord Bot
======================

A Discord bot that answers questions about a roleplay community's rule
documents. Rules are parsed into a searchable index at startup; members ask
by mentioning the bot or by direct message, and staff use ``/rules``
commands for lookups and reloads.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. RULEKEEPER_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("RULEKEEPER_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from rulekeeper.configuration.app_configuration import app_config
from rulekeeper.rules.rule_index import rules_service
from rulekeeper.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Returns
    -------
    str
        Discord bot token extracted from the loaded environment.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for reading guild messages, mentions and DMs."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.dm_messages = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot) -> None:
    """Register the RuleKeeper cogs with the provided bot instance."""
    from rulekeeper.bot.cogs import message_listener, rules_cmds

    message_listener.setup(discord_bot_instance)
    rules_cmds.setup(discord_bot_instance)

    logger.info("All cogs loaded successfully.")


def create_bot() -> discord.Bot:
    """Instantiate the Discord bot and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot)
    return bot


def build_rule_index() -> None:
    """Build the initial rule index from the configured documents."""
    paths = app_config.rules_paths
    logger.info("Building rule index from %s", app_config.rules_directory)
    index = rules_service.reload(paths)
    fallback = [str(rule_type) for rule_type, document in index.documents.items() if document.fallback]
    if fallback:
        logger.warning("Running with embedded fallback rules for: %s", ", ".join(fallback))


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        if not bot.is_closed():
            await bot.close()
        logger.info("Discord bot start routine finished.")


async def async_main() -> int:
    """Bootstrap the rule index and the bot, returning an exit code."""
    token = load_environment()

    try:
        build_rule_index()
    except Exception as exc:
        logger.critical("Failed to build rule index: %s", exc)
        return 1

    try:
        bot = create_bot()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        return 1

    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        return 1
    return 0


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    sys.excepthook = handle_exception
    logger.info("Starting RuleKeeper…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1


if __name__ == "__main__":
    sys.exit(main())
