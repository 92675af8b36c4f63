"""
Rule lookup slash commands for RuleKeeper.

All commands live under the ``/rules`` group and reply with ephemeral plain
text. Lookups and searches read the current rule index; ``/rules reload``
rebuilds it from disk in a worker thread and requires the Manage Server
permission.
"""

import asyncio

import discord
from discord import Option
from discord.ext import commands

from rulekeeper.configuration.app_configuration import app_config
from rulekeeper.datatypes.rule_datatypes import RuleRecord
from rulekeeper.rules.compound_rules import render_compound_answer
from rulekeeper.rules.critical_mappings import render_decisive_answer
from rulekeeper.rules.errors import IndexNotReadyError
from rulekeeper.rules.rule_index import rules_service
from rulekeeper.rules.rules_tables import INFRACTION_CLASSES
from rulekeeper.util import discord_utils
from rulekeeper.util.logger import get_logger

logger = get_logger("rules_commands")

SEARCH_RESULTS_SHOWN = 5
NOT_READY_MESSAGE = "❌ The rule index is still loading. Try again shortly."
NO_MATCH_MESSAGE = "No specific rule matched that query. Contact staff for help."


def format_rule_summary(rule: RuleRecord) -> str:
    """Heading, description and consequence chain of a single rule."""
    lines = [f"**{rule.heading}**", rule.description or "No description available."]
    details = [f"Document: {str(rule.rule_type).title()}"]
    if rule.section is not None:
        details.insert(0, f"Section: {rule.section}")
    lines.append(" | ".join(details))
    if rule.infraction_codes:
        chain = " → ".join(" + ".join(step) for step in rule.infraction_codes)
        lines.append(f"Infractions: {chain}")
    if rule.approval_required:
        lines.append(f"Approval required: {rule.approval_required}")
    return "\n".join(lines)


class RulesCog(commands.Cog):
    """Cog for rule lookup commands."""

    rules = discord.SlashCommandGroup("rules", "Look up community and crew rules")

    def __init__(self, bot: discord.Bot):
        self.bot = bot
        logger.info("Rules commands cog loaded")

    async def _send(self, application_context: discord.ApplicationContext, text: str) -> None:
        for chunk in discord_utils.chunk_message(text):
            await application_context.send_followup(content=chunk, ephemeral=True)

    @rules.command(name="lookup", description="Show a rule by its code, e.g. C06.01")
    async def lookup(
        self,
        application_context: discord.ApplicationContext,
        code: Option(str, "Rule code such as C06.01 or c6.1", required=True),  # type: ignore
    ) -> None:
        """Show a single rule by code."""
        await application_context.defer(ephemeral=True)
        try:
            rule = rules_service.lookup_by_code(code)
        except IndexNotReadyError:
            await application_context.send_followup(content=NOT_READY_MESSAGE, ephemeral=True)
            return

        if rule is None:
            await application_context.send_followup(content=f"❌ No rule found for `{code}`.", ephemeral=True)
            return
        await self._send(application_context, format_rule_summary(rule))

    @rules.command(name="search", description="Search the rules by topic or question")
    async def search(
        self,
        application_context: discord.ApplicationContext,
        query: Option(str, "What you want to know", required=True),  # type: ignore
    ) -> None:
        """Search rules, applying critical scenario overrides first."""
        await application_context.defer(ephemeral=True)
        try:
            response = rules_service.resolve(query, app_config.search_options)
        except IndexNotReadyError:
            await application_context.send_followup(content=NOT_READY_MESSAGE, ephemeral=True)
            return

        if response.critical:
            await self._send(application_context, render_decisive_answer(response.meta["critical_match"]))
            return

        parts = []
        compound = render_compound_answer(response.meta.get("compound_violations", ()))
        if compound:
            parts.append(compound)
        if response.found:
            lines = ["📋 **Matching Rules**"]
            for hit in response.primary[:SEARCH_RESULTS_SHOWN]:
                lines.append(f"**{hit.rule.heading}** ({hit.match_type}, score {hit.score:.1f})")
                lines.append(hit.rule.description or "-")
            if response.related:
                related = dict.fromkeys(edge.target_code for edge in response.related)
                lines.append("Related: " + ", ".join(related))
            parts.append("\n".join(lines))

        await self._send(application_context, "\n\n".join(parts) or NO_MATCH_MESSAGE)

    @rules.command(name="explain", description="Explain a rule with its consequences and related rules")
    async def explain(
        self,
        application_context: discord.ApplicationContext,
        code: Option(str, "Rule code such as C04.03", required=True),  # type: ignore
    ) -> None:
        """Send the rendered explanation of a rule."""
        await application_context.defer(ephemeral=True)
        try:
            explanation = rules_service.explain(code)
        except IndexNotReadyError:
            await application_context.send_followup(content=NOT_READY_MESSAGE, ephemeral=True)
            return

        if explanation is None:
            await application_context.send_followup(content=f"❌ No rule found for `{code}`.", ephemeral=True)
            return
        await self._send(application_context, explanation.rendered)

    @rules.command(name="infractions", description="Show the infraction class table")
    async def infractions(self, application_context: discord.ApplicationContext) -> None:
        """Show every infraction class."""
        await application_context.defer(ephemeral=True)
        lines = ["⚖️ **Infraction Classes**"]
        for infraction in INFRACTION_CLASSES.values():
            points = f"{infraction.points} pts" if infraction.points is not None else "no points"
            lines.append(f"**{infraction.name}**: {points} · {infraction.duration} · expires {infraction.expires}")
        await self._send(application_context, "\n".join(lines))

    @rules.command(name="stats", description="Show rule index statistics")
    async def stats(self, application_context: discord.ApplicationContext) -> None:
        """Show counts for the current rule index."""
        await application_context.defer(ephemeral=True)
        try:
            stats = rules_service.stats()
        except IndexNotReadyError:
            await application_context.send_followup(content=NOT_READY_MESSAGE, ephemeral=True)
            return

        lines = [
            "📊 **Rule Index**",
            f"Total Rules: {stats.total_rules}",
            f"Community: {stats.community_rules}",
            f"Crew: {stats.crew_rules}",
            f"Concepts: {stats.concept_count}",
            f"Keywords: {stats.keyword_count}",
            f"Relationships: {stats.relationship_edge_count}",
        ]
        if stats.built_at is not None:
            lines.append(f"Built {stats.built_at:%Y-%m-%d %H:%M:%S} UTC")
        await self._send(application_context, "\n".join(lines))

    @rules.command(name="reload", description="Reload the rule documents from disk")
    async def reload(self, application_context: discord.ApplicationContext) -> None:
        """Rebuild the rule index; the previous index stays live if the rebuild fails."""
        await application_context.defer(ephemeral=True)
        if not discord_utils.has_permissions(application_context, manage_guild=True):
            await application_context.send_followup(
                content="You do not have permission to use this command.", ephemeral=True
            )
            return

        try:
            index = await asyncio.to_thread(rules_service.reload, app_config.rules_paths)
        except Exception as e:
            logger.error(f"Error in reload command: {e}")
            await application_context.send_followup(content=f"❌ Reload failed: {e}", ephemeral=True)
            return

        stats = index.stats()
        fallback = [str(rule_type) for rule_type, document in index.documents.items() if document.fallback]
        message = f"✅ Rules reloaded. Loaded {stats.community_rules} community and {stats.crew_rules} crew rules."
        if fallback:
            message += f"\n⚠️ Using embedded fallback text for: {', '.join(fallback)}"
        await application_context.send_followup(content=message, ephemeral=True)
        logger.info(f"Rules reloaded by {application_context.user}")


def setup(bot: discord.Bot) -> None:
    """Register the RulesCog with the bot."""
    bot.add_cog(RulesCog(bot))
