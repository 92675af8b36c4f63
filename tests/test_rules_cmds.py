import discord
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from rulekeeper.bot.cogs import rules_cmds
from rulekeeper.rules.rule_index import RulesService


def _ctx(manage_guild=True):
    author = MagicMock(spec=discord.Member)
    author.guild_permissions = SimpleNamespace(manage_guild=manage_guild)
    return SimpleNamespace(
        author=author,
        user=author,
        defer=AsyncMock(),
        send_followup=AsyncMock(),
    )


def _callback(command):
    cb = getattr(command, "callback", None)
    assert cb is not None
    return cb


def _content(ctx):
    return ctx.send_followup.await_args.kwargs["content"]


@pytest.fixture()
def service(rule_files, monkeypatch):
    service = RulesService(rule_files)
    service.reload()
    monkeypatch.setattr(rules_cmds, "rules_service", service)
    return service


@pytest.fixture()
def cog():
    return rules_cmds.RulesCog(SimpleNamespace())


def test_setup_registers_cog():
    captured = {}

    rules_cmds.setup(SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog)))

    assert isinstance(captured["cog"], rules_cmds.RulesCog)


@pytest.mark.asyncio
async def test_lookup_found(cog, service):
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.lookup)(cog, ctx, "c6.1")

    ctx.defer.assert_awaited_once_with(ephemeral=True)
    content = _content(ctx)
    assert content.startswith("**C06.01 - PLAYER ROAMING LIMITATIONS**")
    assert "Infractions: A → B → C → D → E" in content
    assert ctx.send_followup.await_args.kwargs["ephemeral"] is True
    assert "embed" not in ctx.send_followup.await_args.kwargs


@pytest.mark.asyncio
async def test_lookup_missing(cog, service):
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.lookup)(cog, ctx, "C99.99")

    assert "No rule found" in _content(ctx)


@pytest.mark.asyncio
async def test_lookup_before_index_built(cog, monkeypatch):
    monkeypatch.setattr(rules_cmds, "rules_service", RulesService())
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.lookup)(cog, ctx, "C06.01")

    assert _content(ctx) == rules_cmds.NOT_READY_MESSAGE


@pytest.mark.asyncio
async def test_search_lists_hits_with_related(cog, service):
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.search)(cog, ctx, "C06.01")

    content = _content(ctx)
    assert content.startswith("📋 **Matching Rules**\n**C06.01 - PLAYER ROAMING LIMITATIONS** (exact_code")
    related = [line for line in content.splitlines() if line.startswith("Related: ")]
    assert related and "C11.01" in related[0]


@pytest.mark.asyncio
async def test_search_critical_scenario_sends_verdict(cog, service):
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.search)(cog, ctx, "how many people can rob a store if not in a crew")

    assert _content(ctx).startswith("**MAXIMUM 6 PEOPLE** - This follows rule C06.01")


@pytest.mark.asyncio
async def test_search_reports_compound_violations(cog, service):
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.search)(cog, ctx, "he keeps trying to dupe money with an exploit")

    content = ctx.send_followup.await_args_list[0].kwargs["content"]
    assert content.startswith("**MULTIPLE VIOLATIONS DETECTED**")
    assert "C07.07 - EXPLOITING" in content


@pytest.mark.asyncio
async def test_search_without_results(cog, service):
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.search)(cog, ctx, "C99.99")

    assert _content(ctx) == rules_cmds.NO_MATCH_MESSAGE


@pytest.mark.asyncio
async def test_explain_sends_rendered_text(cog, service):
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.explain)(cog, ctx, "C07.03")

    content = ctx.send_followup.await_args_list[0].kwargs["content"]
    assert content.startswith("C07.03 - META GAMING & EXTERNAL INFORMATION:")
    assert "What's Not Allowed:" in content


@pytest.mark.asyncio
async def test_infractions_table(cog):
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.infractions)(cog, ctx)

    lines = _content(ctx).splitlines()
    assert lines[0] == "⚖️ **Infraction Classes**"
    assert lines[1].startswith("**Warning/1 Day**:")
    assert len(lines) == 11


@pytest.mark.asyncio
async def test_stats(cog, service):
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.stats)(cog, ctx)

    lines = _content(ctx).splitlines()
    assert "Total Rules: 3" in lines
    assert "Crew: 1" in lines


@pytest.mark.asyncio
async def test_reload_requires_manage_guild(cog, service):
    ctx = _ctx(manage_guild=False)
    before = service.current

    await _callback(rules_cmds.RulesCog.reload)(cog, ctx)

    assert "permission" in _content(ctx)
    assert service.current is before


@pytest.mark.asyncio
async def test_reload_rebuilds_from_configured_paths(cog, service, tmp_path, monkeypatch):
    monkeypatch.setattr(rules_cmds.app_config, "_data", {
        "rules": {"directory": str(tmp_path), "community_file": "community.txt", "crew_file": "absent.txt"},
    })
    ctx = _ctx()
    before = service.current

    await _callback(rules_cmds.RulesCog.reload)(cog, ctx)

    content = _content(ctx)
    assert content.startswith("✅ Rules reloaded.")
    assert "2 community and 3 crew rules" in content
    assert "fallback" in content
    assert service.current is not before


@pytest.mark.asyncio
async def test_reload_failure_reports_error(cog, service, monkeypatch):
    def explode(paths=None):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(service, "reload", explode)
    ctx = _ctx()

    await _callback(rules_cmds.RulesCog.reload)(cog, ctx)

    assert "disk on fire" in _content(ctx)
