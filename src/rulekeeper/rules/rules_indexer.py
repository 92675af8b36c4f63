"""
Concept, keyword, and section indexes plus the rule relationship graph.

:func:`build_indexes` is a pure function of the parsed rule sequence. The
relationship graph compares every pair of rules, which is quadratic but fine
for corpora on the order of a hundred rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence, Tuple

from rulekeeper.datatypes.rule_datatypes import RelationshipEdge, RuleRecord
from rulekeeper.util.logger import get_logger

logger = get_logger("rules_indexer")

MAX_EDGES_PER_RULE = 5
KEYWORD_EDGE_WEIGHT = 0.5
MIN_SHARED_KEYWORDS = 2


@dataclass(frozen=True)
class RuleIndexes:
    """Read-only reverse indexes derived from one rule set."""

    concept_index: Mapping[str, Tuple[RuleRecord, ...]] = field(default_factory=dict)
    keyword_index: Mapping[str, Tuple[RuleRecord, ...]] = field(default_factory=dict)
    section_index: Mapping[str, Tuple[RuleRecord, ...]] = field(default_factory=dict)
    relationship_graph: Mapping[str, Tuple[RelationshipEdge, ...]] = field(default_factory=dict)

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self.relationship_graph.values())


def _freeze(index: Dict[str, List[RuleRecord]]) -> Mapping[str, Tuple[RuleRecord, ...]]:
    return MappingProxyType({key: tuple(rules) for key, rules in index.items()})


def build_concept_index(rules: Sequence[RuleRecord]) -> Mapping[str, Tuple[RuleRecord, ...]]:
    index: Dict[str, List[RuleRecord]] = {}
    for rule in rules:
        for concept in sorted(rule.concepts):
            index.setdefault(concept, []).append(rule)
    return _freeze(index)


def build_keyword_index(rules: Sequence[RuleRecord]) -> Mapping[str, Tuple[RuleRecord, ...]]:
    index: Dict[str, List[RuleRecord]] = {}
    for rule in rules:
        for keyword in sorted(rule.keywords):
            index.setdefault(keyword, []).append(rule)
    return _freeze(index)


def build_section_index(rules: Sequence[RuleRecord]) -> Mapping[str, Tuple[RuleRecord, ...]]:
    index: Dict[str, List[RuleRecord]] = {}
    for rule in rules:
        if rule.section is not None:
            index.setdefault(rule.section.title, []).append(rule)
    return _freeze(index)


def related_edges(rule: RuleRecord, rules: Sequence[RuleRecord]) -> Tuple[RelationshipEdge, ...]:
    """
    Strongest associations between ``rule`` and every other rule.

    A shared concept set yields an edge of strength ``len(shared)``; more than
    one shared keyword yields a separate, weaker edge of ``0.5 * len(shared)``.
    Only the five strongest edges are kept. The sort is stable, so equal
    strengths keep the order in which the other rules were parsed.
    """
    edges: List[RelationshipEdge] = []
    for other in rules:
        if other is rule or (other.code == rule.code and other.rule_type is rule.rule_type):
            continue

        shared_concepts = rule.concepts & other.concepts
        if shared_concepts:
            edges.append(RelationshipEdge(
                source_code=rule.code,
                target=other,
                shared=tuple(sorted(shared_concepts)),
                strength=float(len(shared_concepts)),
                via="concept",
            ))

        shared_keywords = rule.keywords & other.keywords
        if len(shared_keywords) >= MIN_SHARED_KEYWORDS:
            edges.append(RelationshipEdge(
                source_code=rule.code,
                target=other,
                shared=tuple(sorted(shared_keywords)),
                strength=KEYWORD_EDGE_WEIGHT * len(shared_keywords),
                via="keyword",
            ))

    edges.sort(key=lambda edge: edge.strength, reverse=True)
    return tuple(edges[:MAX_EDGES_PER_RULE])


def build_relationship_graph(rules: Sequence[RuleRecord]) -> Mapping[str, Tuple[RelationshipEdge, ...]]:
    graph: Dict[str, Tuple[RelationshipEdge, ...]] = {}
    for rule in rules:
        # Community and crew codes can collide; the first-parsed rule owns the slot
        graph.setdefault(rule.code, related_edges(rule, rules))
    return MappingProxyType(graph)


def build_indexes(rules: Sequence[RuleRecord]) -> RuleIndexes:
    """Build every index over ``rules`` (community rules first, then crew)."""
    indexes = RuleIndexes(
        concept_index=build_concept_index(rules),
        keyword_index=build_keyword_index(rules),
        section_index=build_section_index(rules),
        relationship_graph=build_relationship_graph(rules),
    )
    logger.debug(
        "[RULES INDEXER] Indexed %d rules: %d concepts, %d keywords, %d sections, %d edges",
        len(rules),
        len(indexes.concept_index),
        len(indexes.keyword_index),
        len(indexes.section_index),
        indexes.edge_count,
    )
    return indexes
