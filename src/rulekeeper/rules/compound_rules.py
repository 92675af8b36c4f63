"""
Compound violation detection.

Some scenarios break more than one rule at once (running someone over
repeatedly is both vehicle deathmatch and excessive toxicity). Each pattern
lists the keywords that describe the scenario and the rules it implicates.
A pattern fires when at least :data:`MIN_KEYWORD_MATCHES` of its keywords
occur in the query; confidence is the share of its keywords that matched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Mapping, Optional, Sequence, Tuple

from rulekeeper.datatypes.rule_datatypes import CompoundRule, CompoundViolation
from rulekeeper.util.logger import get_logger

logger = get_logger("compound_rules")

MIN_KEYWORD_MATCHES = 2
MAX_COMPOUNDS = 2
MULTIPLE_VIOLATIONS = "MULTIPLE VIOLATIONS"


@dataclass(frozen=True)
class CompoundPattern:
    name: str
    keywords: Tuple[str, ...]
    rules: Tuple[CompoundRule, ...]
    judgment: str = MULTIPLE_VIOLATIONS

    def matched_keywords(self, query: str) -> Tuple[str, ...]:
        lowered = query.lower()
        return tuple(keyword for keyword in self.keywords if keyword in lowered)


COMPOUND_PATTERNS: Tuple[CompoundPattern, ...] = (
    CompoundPattern(
        "vehicle_water_dumping",
        ("dump", "water", "ocean", "car", "vehicle", "impound"),
        (
            CompoundRule("C07.05", "POWER GAMING", "Disposing of vehicle in water to avoid consequences"),
            CompoundRule("C05.01", "LAW ENFORCEMENT INTERACTIONS", "Avoiding law enforcement through unrealistic means"),
        ),
    ),
    CompoundPattern(
        "meta_gaming_revenge",
        ("discord", "stream", "revenge", "retaliate", "external"),
        (
            CompoundRule("C07.03", "META GAMING & EXTERNAL INFORMATION", "Using external information sources"),
            CompoundRule("C02.01", "EXTERNAL TARGETING & COMMUNICATION", "Taking roleplay conflicts outside of character"),
        ),
    ),
    CompoundPattern(
        "toxic_rdm",
        ("kill", "random", "toxic", "excessive", "no reason"),
        (
            CompoundRule("C09.02", "RANDOM DEATH MATCH", "Killing without proper roleplay initiation"),
            CompoundRule("C03.03", "EXCESSIVE TOXICITY", "Behavior intended to cause harm and disturbance"),
        ),
    ),
    CompoundPattern(
        "vdm_toxicity",
        ("vehicle", "running over", "downed", "repeatedly"),
        (
            CompoundRule("C09.01", "VEHICLE DEATH MATCH", "Using vehicle as weapon against others"),
            CompoundRule("C03.03", "EXCESSIVE TOXICITY", "Repeatedly running over downed bodies"),
        ),
    ),
    CompoundPattern(
        "combat_logging_vdm",
        ("disconnect", "crash", "chase", "pursuit", "log"),
        (
            CompoundRule("C07.06", "COMBAT LOGGING", "Disconnecting during active scene"),
            CompoundRule("C05.01", "LAW ENFORCEMENT INTERACTIONS", "Avoiding law enforcement interaction"),
        ),
    ),
    CompoundPattern(
        "exploiting_economy",
        ("exploit", "money", "dupe", "economy", "advantage"),
        (
            CompoundRule("C07.07", "EXPLOITING", "Taking advantage of unintended server features"),
            CompoundRule("C07.02", "CURRENCY & ITEM EXCHANGING", "Gaining unintended economic advantage"),
        ),
    ),
    CompoundPattern(
        "government_corruption_power",
        ("government", "abuse", "power", "corrupt", "equipment"),
        (
            CompoundRule("C05.04", "GOVERNMENT CORRUPTION", "Abusing government powers and equipment"),
            CompoundRule("C07.05", "POWER GAMING", "Forcing roleplay through authority abuse"),
        ),
    ),
)

RULE_RELATIONSHIPS: Mapping[FrozenSet[str], str] = {
    frozenset(("C07.05", "C05.01")): "Power gaming often involves avoiding law enforcement",
    frozenset(("C09.01", "C03.03")): "VDM frequently escalates to excessive toxicity",
    frozenset(("C07.03", "C02.01")): "Meta gaming and external targeting often occur together",
    frozenset(("C07.06", "C05.01")): "Combat logging commonly occurs during police interactions",
    frozenset(("C05.04", "C07.05")): "Government corruption typically involves power gaming elements",
}


def find_rule_relationship(first_code: str, second_code: str) -> Optional[str]:
    """Known link between two rules, in either order, or ``None``."""
    return RULE_RELATIONSHIPS.get(frozenset((first_code, second_code)))


def detect_compound_violations(
    query: str,
    patterns: Sequence[CompoundPattern] = COMPOUND_PATTERNS,
    limit: int = MAX_COMPOUNDS,
) -> Tuple[CompoundViolation, ...]:
    """
    Find the scenarios in ``query`` that break several rules at once.

    Args:
        query: Raw user question.
        patterns: Pattern table; defaults to :data:`COMPOUND_PATTERNS`.
        limit: Maximum number of violations returned.

    Returns:
        tuple[CompoundViolation, ...]: Highest confidence first. Ties keep
        table order.
    """
    if not query or not query.strip():
        return ()

    detected = []
    for pattern in patterns:
        matched = pattern.matched_keywords(query)
        if len(matched) < MIN_KEYWORD_MATCHES:
            continue
        confidence = min(100.0, len(matched) * 100 / len(pattern.keywords))
        detected.append(CompoundViolation(pattern.name, pattern.judgment, pattern.rules, matched, confidence))

    detected.sort(key=lambda violation: violation.confidence, reverse=True)
    if detected:
        logger.debug(
            "[COMPOUND RULES] %d pattern(s) matched, top %s (%.0f%%)",
            len(detected), detected[0].pattern_name, detected[0].confidence,
        )
    return tuple(detected[:limit])


def render_compound_answer(violations: Sequence[CompoundViolation]) -> Optional[str]:
    """Plain-text summary listing each violation's rules, or ``None`` when there are none."""
    if not violations:
        return None

    parts = ["**MULTIPLE VIOLATIONS DETECTED**"]
    for number, violation in enumerate(violations, start=1):
        lines = [f"**Violation {number}:**"]
        lines.extend(f"• **{rule.code} - {rule.title}**: {rule.reasoning}" for rule in violation.rules)
        if len(violation.rules) == 2:
            link = find_rule_relationship(*violation.codes)
            if link:
                lines.append(f"{link}.")
        parts.append("\n".join(lines))

    parts.append(
        "**Consequences:** Multiple rule violations result in escalated infractions. "
        "Each rule violation is processed separately, leading to cumulative infraction points."
    )
    parts.append("**Recommendation:** Contact staff for clarification on compound violations.")
    return "\n\n".join(parts)
