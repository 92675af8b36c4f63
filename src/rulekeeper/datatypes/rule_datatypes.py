"""
Rule records and search result structures.

This module defines the immutable value types that flow through the rules
engine: parsed rule records, relationship edges, infraction classes, and the
containers returned by search, explain, and stats.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class RuleType(Enum):
    """The two source documents a rule can come from."""

    COMMUNITY = "community"
    CREW = "crew"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class RuleSection:
    """Document section a rule was declared under."""

    number: int
    title: str

    def __str__(self) -> str:
        return f"{self.number} - {self.title}"


InfractionSequence = Tuple[Tuple[str, ...], ...]
"""Ordered escalation steps; each step holds one letter or parallel ``+`` branches."""


@dataclass(frozen=True, slots=True)
class RuleRecord:
    """A single parsed rule.

    Attributes:
        code: Unique identifier within its document, e.g. ``C06.01``.
        title: Short heading from the rule header line.
        section: Section the rule was declared under, if any.
        rule_type: Which document the rule came from.
        raw_text: Header line plus every content line up to the next header.
        description: First substantive sentence of the rule body.
        examples: Illustrative sentences following an examples cue.
        prohibitions: Sentences phrased as prohibitions.
        requirements: Sentences phrased as obligations or limits.
        consequences: Sentences describing penalties.
        infraction_codes: Parsed ``Infraction Category`` escalation sequence.
        approval_required: Payload of an ``Approval required:`` line.
        context_tags: Situational tags (``during_conflicts``, ``in_roleplay`` ...).
        keywords: Significant lowercase tokens from title and body.
        concepts: Domain tags matched from the concept table.
        severity: Highest severity rank among the infraction letters.
    """

    code: str
    title: str
    section: Optional[RuleSection]
    rule_type: RuleType
    raw_text: str = ""
    description: str = ""
    examples: Tuple[str, ...] = ()
    prohibitions: Tuple[str, ...] = ()
    requirements: Tuple[str, ...] = ()
    consequences: Tuple[str, ...] = ()
    infraction_codes: InfractionSequence = ()
    approval_required: Optional[str] = None
    context_tags: Tuple[str, ...] = ()
    keywords: FrozenSet[str] = frozenset()
    concepts: FrozenSet[str] = frozenset()
    severity: int = 0

    @property
    def infraction_letters(self) -> List[str]:
        """Flattened infraction letters in escalation order."""
        return [letter for step in self.infraction_codes for letter in step]

    @property
    def heading(self) -> str:
        return f"{self.code} - {self.title}"


@dataclass(frozen=True, slots=True)
class InfractionClass:
    """Fixed disciplinary policy attached to an infraction letter."""

    letter: str
    name: str
    points: Optional[int]
    duration: str
    expires: str
    severity: str
    description: str


@dataclass(frozen=True, slots=True)
class RelationshipEdge:
    """Association between two rules sharing concepts or keywords."""

    source_code: str
    target: RuleRecord
    shared: Tuple[str, ...]
    strength: float
    via: str = "concept"

    @property
    def target_code(self) -> str:
        return self.target.code


@dataclass(frozen=True, slots=True)
class SearchWeights:
    """Tunable scoring constants for the query matcher."""

    exact_code: float = 100.0
    title_base: float = 50.0
    title_weight: float = 1.2
    keyword_base: float = 10.0
    keyword_weight: float = 0.8
    concept_base: float = 15.0
    concept_weight: float = 1.0
    description: float = 20.0
    example: float = 25.0

    @classmethod
    def from_mapping(cls, data: Dict[str, Any] | None) -> "SearchWeights":
        """Build weights from a config mapping, ignoring unknown or invalid keys."""
        values: Dict[str, float] = {}
        for name in cls.__dataclass_fields__:
            if data and name in data:
                try:
                    values[name] = float(data[name])
                except (TypeError, ValueError):
                    continue
        return cls(**values)


@dataclass(frozen=True, slots=True)
class SearchOptions:
    """Options accepted by the query matcher."""

    include_related: bool = True
    limit: int = 10
    related_limit: int = 3
    weights: SearchWeights = field(default_factory=SearchWeights)


@dataclass(frozen=True, slots=True)
class SearchHit:
    """A scored rule in a search response."""

    rule: RuleRecord
    score: float
    match_type: str


@dataclass(frozen=True, slots=True)
class SearchResponse:
    """Ranked search results plus related rules and metadata."""

    primary: Tuple[SearchHit, ...] = ()
    related: Tuple[RelationshipEdge, ...] = ()
    meta: Dict[str, Any] = field(default_factory=dict)
    critical: bool = False

    @property
    def found(self) -> bool:
        return bool(self.primary)


@dataclass(frozen=True, slots=True)
class CriticalMatch:
    """Fixed verdict returned by a critical mapping."""

    code: str
    title: str
    judgment: str
    reasoning: str
    infraction_codes: Tuple[str, ...]
    category: str


@dataclass(frozen=True, slots=True)
class CompoundRule:
    """One rule implicated by a compound violation, with why it applies."""

    code: str
    title: str
    reasoning: str


@dataclass(frozen=True, slots=True)
class CompoundViolation:
    """A scenario that breaks several rules at once."""

    pattern_name: str
    judgment: str
    rules: Tuple[CompoundRule, ...]
    matched_keywords: Tuple[str, ...]
    confidence: float

    @property
    def codes(self) -> Tuple[str, ...]:
        return tuple(rule.code for rule in self.rules)


@dataclass(frozen=True, slots=True)
class RuleExplanation:
    """Everything known about a single rule, with a rendered summary."""

    rule: RuleRecord
    infractions: Tuple[InfractionClass, ...]
    infraction_source: str
    related: Tuple[RelationshipEdge, ...]
    conceptual_context: Tuple[Tuple[str, Tuple[RuleRecord, ...], int], ...]
    rendered: str


@dataclass(frozen=True, slots=True)
class IndexStats:
    """Counts describing a built rule index."""

    total_rules: int
    community_rules: int
    crew_rules: int
    concept_count: int
    keyword_count: int
    section_count: int
    relationship_edge_count: int
    built_at: Optional[datetime] = None
