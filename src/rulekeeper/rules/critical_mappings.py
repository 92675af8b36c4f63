"""
Critical mapping overrides.

Some scenarios were repeatedly misclassified by general search and the
completion service. This module pins them to a fixed rule and verdict. The
table is ordered data: predicates are evaluated top to bottom and the first
match wins, since several broad category entries would also match the
narrower scenario entries above them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from rulekeeper.datatypes.rule_datatypes import CriticalMatch
from rulekeeper.rules.rules_tables import INFRACTION_OVERRIDES
from rulekeeper.util.logger import get_logger

logger = get_logger("critical_mappings")

Predicate = Callable[[str], bool]

VIOLATION_JUDGMENTS = ("VIOLATION", "NOT PERMISSIBLE", "NOT ALLOWED")


# -------------------- Predicate combinators --------------------
def contains_all(*terms: str) -> Predicate:
    """True when every term occurs in the lowercased query."""
    lowered = tuple(term.lower() for term in terms)
    return lambda query: all(term in query.lower() for term in lowered)


def contains_any(*terms: str) -> Predicate:
    """True when any term occurs in the lowercased query."""
    lowered = tuple(term.lower() for term in terms)
    return lambda query: any(term in query.lower() for term in lowered)


def matches_any(*patterns: str) -> Predicate:
    """True when any case-insensitive regex is found in the query."""
    compiled = tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)
    return lambda query: any(pattern.search(query) for pattern in compiled)


def either(*predicates: Predicate) -> Predicate:
    return lambda query: any(predicate(query) for predicate in predicates)


@dataclass(frozen=True)
class CriticalMapping:
    """One override: when ``predicate`` holds, answer with ``result``."""

    name: str
    predicate: Predicate
    result: CriticalMatch

    def matches(self, query: str) -> bool:
        return self.predicate(query)


def _verdict(code: str, title: str, judgment: str, reasoning: str, category: str,
             infractions: Sequence[str] | None = None) -> CriticalMatch:
    letters = tuple(infractions) if infractions is not None else INFRACTION_OVERRIDES.get(code, ("A",))
    return CriticalMatch(code, title, judgment, reasoning, letters, category)


VALUE_OF_LIFE = ("C04.03", "VALUE OF LIFE")
EXCESSIVE_TOXICITY = ("C03.03", "EXCESSIVE TOXICITY")
BREAKING_CHARACTER = ("C02.02", "BREAKING CHARACTER")
PLAYER_ROAMING = ("C06.01", "PLAYER ROAMING LIMITATIONS")
CREW_ROAMING = ("C11.01", "ROAMING LIMITATIONS")
COMBAT_TIMER = ("C04.06", "RETURNING TO SCENE & COMBAT TIMER")
META_GAMING = ("C07.03", "META GAMING & EXTERNAL INFORMATION")


CRITICAL_MAPPINGS: Tuple[CriticalMapping, ...] = (
    # Scenario-specific entries
    CriticalMapping(
        "threatened_by_three_armed",
        contains_all("threaten", "three", "weapon"),
        _verdict(*VALUE_OF_LIFE, "NOT PERMISSIBLE", "must comply when outgunned", "value_of_life"),
    ),
    CriticalMapping(
        "running_over_downed_bodies",
        contains_all("running over", "downed"),
        _verdict(*EXCESSIVE_TOXICITY, "VIOLATION", "excessive toxicity", "excessive_toxicity"),
    ),
    CriticalMapping(
        "casino_heist_fourteen",
        contains_all("casino", "14"),
        _verdict(*PLAYER_ROAMING, "NOT ALLOWED", "maximum 6 people", "roaming_limits"),
    ),
    CriticalMapping(
        "infraction_points_in_character",
        contains_all("infraction points", "roleplay"),
        _verdict(*BREAKING_CHARACTER, "VIOLATION", "breaking character", "breaking_character"),
    ),
    CriticalMapping(
        "carrying_downed_player",
        contains_all("pick", "20 min"),
        _verdict(*EXCESSIVE_TOXICITY, "VIOLATION", "excessive toxicity", "excessive_toxicity"),
    ),
    CriticalMapping(
        "store_robbery_without_crew",
        contains_all("rob", "store", "not in a crew"),
        _verdict(*PLAYER_ROAMING, "MAXIMUM 6 PEOPLE", "6 people maximum", "roaming_limits"),
    ),
    CriticalMapping(
        "combat_timer_after_downed",
        either(contains_any("combat timer"), contains_all("after", "downed")),
        _verdict(*COMBAT_TIMER, "30 MINUTES REQUIRED", "30 minutes", "combat_timer"),
    ),
    CriticalMapping(
        "crew_of_sixteen",
        contains_all("crew", "16"),
        _verdict(*CREW_ROAMING, "YES - UP TO 16 PEOPLE", "Yes, 16 people for crews", "crew_roaming"),
    ),
    CriticalMapping(
        "discord_communication",
        contains_all("discord", "communicate"),
        _verdict(*META_GAMING, "VIOLATION", "Meta gaming violation", "meta_gaming"),
    ),
    # Category fallbacks
    CriticalMapping(
        "value_of_life",
        either(
            matches_any(r"outgunned?\s*\d+\s*to\s*\d+", r"threaten.*three.*arm", r"value.*life", r"pull.*weapon.*fight"),
            contains_any("outgunned", "threaten", "weapon", "three armed", "value of life"),
        ),
        _verdict(*VALUE_OF_LIFE, "NOT PERMISSIBLE", "Character must comply when outgunned 3 to 1 or greater",
                 "value_of_life"),
    ),
    CriticalMapping(
        "excessive_toxicity",
        either(
            matches_any(r"running over.*down", r"pick.*up.*\d+.*min", r"carrying.*20.*min",
                        r"repeatedly.*bodies", r"excessive.*toxicity"),
            contains_any("running over", "downed bodies", "repeatedly", "toxic", "excessive",
                         "carrying for 20 min", "picking up"),
        ),
        _verdict(*EXCESSIVE_TOXICITY, "VIOLATION", "excessive toxicity", "excessive_toxicity"),
    ),
    CriticalMapping(
        "breaking_character",
        either(
            matches_any(r"infraction\s*points", r"community\s*guidelines", r"mention.*roleplay", r"breaking.*character",
                        r"\blag\b"),
            contains_any("community guidelines", "ooc", "glitch", "breaking character"),
        ),
        _verdict(*BREAKING_CHARACTER, "VIOLATION", "breaking character", "breaking_character"),
    ),
    CriticalMapping(
        "roaming_limits",
        either(
            matches_any(r"casino.*heist.*\d+", r"rob.*store.*\d+", r"how.*many.*people", r"\d+.*crew.*members", r"14.*crew"),
            contains_any("how many people", "rob store", "casino heist", "14 crew members", "roaming", "group limit"),
        ),
        _verdict(*PLAYER_ROAMING, "NOT ALLOWED", "maximum 6 people", "roaming_limits"),
    ),
    CriticalMapping(
        "crew_roaming",
        either(
            matches_any(r"crew.*roam.*\d+", r"16.*people", r"crew.*members.*roam"),
            contains_any("crew roam", "16 people", "crew members roam"),
        ),
        _verdict(*CREW_ROAMING, "YES - UP TO 16 PEOPLE",
                 "Crew members can roam with up to 16 people (6 with law enforcement)", "crew_roaming"),
    ),
    CriticalMapping(
        "combat_timer",
        either(
            matches_any(r"combat.*timer", r"after.*down", r"30.*min"),
            contains_any("combat timer", "after being downed", "30 minutes"),
        ),
        _verdict(*COMBAT_TIMER, "30 MINUTES REQUIRED", "30 minutes after medical care before engaging in combat",
                 "combat_timer"),
    ),
    CriticalMapping(
        "meta_gaming",
        either(
            matches_any(r"discord.*communicate", r"external.*information", r"stream.*snip", r"using.*discord",
                        r"\bmeta\b"),
            contains_any("discord communicate", "external information", "meta gaming", "metagaming", "stream sniping"),
        ),
        _verdict(*META_GAMING, "VIOLATION", "meta gaming violation", "meta_gaming"),
    ),
)


def match_critical(query: str, mappings: Sequence[CriticalMapping] = CRITICAL_MAPPINGS) -> Optional[CriticalMatch]:
    """
    Return the verdict of the first mapping whose predicate holds.

    Args:
        query: Raw user question.
        mappings: Ordered override table; defaults to :data:`CRITICAL_MAPPINGS`.

    Returns:
        CriticalMatch | None: The pinned verdict, or ``None`` when no entry applies.
    """
    if not query or not query.strip():
        return None
    for mapping in mappings:
        if mapping.matches(query):
            logger.debug("[CRITICAL MAPPINGS] Query matched %s -> %s", mapping.name, mapping.result.code)
            return mapping.result
    return None


def is_violation(match: CriticalMatch) -> bool:
    return any(judgment in match.judgment for judgment in VIOLATION_JUDGMENTS)


def render_decisive_answer(match: CriticalMatch) -> str:
    """Render a verdict as the bold judgment line, reasoning, and consequence chain."""
    verb = "violates" if is_violation(match) else "follows"
    answer = f"**{match.judgment}** - This {verb} rule {match.code} - {match.title}.\n\n{match.reasoning}"
    if match.infraction_codes:
        answer += f"\n\n**Consequences:** {' → '.join(match.infraction_codes)}"
    return answer
