"""
Fixed lookup tables for the rules engine.

Everything here is static data loaded once at import: the stopword list, the
concept and context pattern tables, the infraction class table, and the
hardcoded per-rule infraction overrides. The critical mapping table lives in
:mod:`rulekeeper.rules.critical_mappings` because its entries carry predicates.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Tuple

from rulekeeper.datatypes.rule_datatypes import InfractionClass


STOPWORDS: frozenset[str] = frozenset({
    "the", "and", "or", "is", "are", "to", "of", "in", "for", "with", "by", "a", "an",
    "this", "that", "these", "those", "from", "into", "than", "then", "there", "their",
    "they", "them", "will", "would", "have", "been", "being", "were", "what", "when",
    "which", "while", "who", "whom", "your", "yours", "also", "such", "other", "must",
    "shall", "should", "does", "each", "only", "more", "most", "some", "very",
})

MIN_KEYWORD_LENGTH = 4

CONCEPT_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "character_conduct": ("character", "roleplay", "immersion", "acting"),
    "violence": ("violence", "killing", "shooting", "attacking", "harming"),
    "communication": ("discord", "external", "teamspeak", "communication"),
    "economy": ("money", "currency", "trading", "scamming", "robbery"),
    "government": ("police", "ems", "government", "law enforcement"),
    "groups": ("crew", "gang", "group", "roaming", "alliance"),
    "technical": ("exploit", "cheat", "mod", "bug", "client"),
    "timeouts": ("restart", "tsunami", "cooldown", "timer"),
    "locations": ("safe zone", "hospital", "apartment", "protected"),
    "roaming": ("roam", "roaming", "group limit", "people maximum"),
    "meta_gaming": ("meta gaming", "metagaming", "meta-gaming", "stream sniping", "outside information"),
    "crew_rules": ("crew", "crews", "crew member", "gang member"),
})
"""Concept tag -> phrases whose presence (substring, lowercase) assigns the tag."""

CONTEXT_PATTERNS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "during_conflicts": (r"during.*conflict", r"active.*engagement", r"hostile.*interaction"),
    "in_roleplay": (r"within roleplay", r"in character", r"during.*scene"),
    "with_government": (r"law enforcement", r"government.*employee", r"ems.*personnel"),
    "crew_activities": (r"crew.*activity", r"gang.*related", r"crew.*member"),
    "public_areas": (r"public.*area", r"safe.*zone", r"neutral.*ground"),
    "restart_times": (r"before.*restart", r"after.*tsunami", r"server.*restart"),
})
"""Situational tag -> regexes searched against the lowercase rule body."""

SEVERITY_BY_LETTER: Mapping[str, int] = MappingProxyType({
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6,
    "CD": 7, "GB": 8, "SI": 9, "CR": 10,
})

INFRACTION_CLASSES: Mapping[str, InfractionClass] = MappingProxyType({
    cls.letter: cls
    for cls in (
        InfractionClass("A", "Warning/1 Day", 5, "1 day suspension or warning", "3 months", "Minor",
                        "Light disciplinary action for minor violations"),
        InfractionClass("B", "3 Day Suspension", 10, "3 day suspension or warning", "6 months", "Low",
                        "Short suspension for repeated minor or moderate violations"),
        InfractionClass("C", "5 Day Suspension", 15, "5 day suspension or warning", "6 months", "Moderate",
                        "Medium suspension for serious rule violations"),
        InfractionClass("D", "7 Day Suspension", 20, "7 day suspension", "12 months", "High",
                        "Week-long suspension for major violations"),
        InfractionClass("E", "14 Day Suspension", 25, "14 day suspension", "12 months", "Severe",
                        "Two-week suspension for very serious violations"),
        InfractionClass("F", "Permanent Ban", 50, "Appealable permanent ban", "Never", "Critical",
                        "Permanent ban with appeal option for extreme violations"),
        InfractionClass("CR", "Community Removal", None, "Indefinite removal without appeal", "Never", "Terminal",
                        "Permanent removal from community with no appeal process"),
        InfractionClass("CD", "Character Deletion", None, "Character(s) deleted", "N/A", "Asset Loss",
                        "Removal of character(s) for economic violations"),
        InfractionClass("GB", "Government Blacklist", None, "Permanent government job ban", "Never",
                        "Role Restriction", "Permanent ban from all government positions"),
        InfractionClass("SI", "Specialized Instance", None, "31+ day suspension", "Varies", "Variable",
                        "Custom punishment for unique situations"),
    )
})

INFRACTION_OVERRIDES: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "C02.02": ("A", "B", "C", "D", "E"),
    "C03.03": ("C", "E", "F"),
    "C04.03": ("C", "D", "E", "F"),
    "C04.06": ("A", "C", "D", "E"),
    "C06.01": ("A", "B", "C", "D", "E"),
    "C07.03": ("B", "D", "E", "F"),
    "C11.01": ("B", "E"),
})
"""Hardcoded escalation letters, used only when a rule's document text has none."""


def severity_of(letters) -> int:
    """Highest severity among ``letters`` (0 when empty or all unknown)."""
    return max((SEVERITY_BY_LETTER.get(letter, 0) for letter in letters), default=0)
