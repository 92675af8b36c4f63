"""
Weighted free-text search over a built rule index.

Scoring is additive per rule:

- exact rule code mentioned in the query
- query phrase contained in the title
- rule keywords overlapping query tokens
- rule concepts overlapping query tokens
- query phrase contained in the description
- query phrase contained in each example

Rule codes are lifted out of the query before the phrase and token signals
are computed, so mentioning a code only ever adds to a rule's score.
"""

from __future__ import annotations

import re
from typing import List, Mapping, Optional, Sequence, Set, Tuple

from rulekeeper.datatypes.rule_datatypes import (
    RelationshipEdge,
    RuleRecord,
    SearchHit,
    SearchOptions,
    SearchResponse,
    SearchWeights,
)
from rulekeeper.rules.rule_extraction import extract_keywords, identify_concepts
from rulekeeper.util.logger import get_logger

logger = get_logger("rules_matcher")


RULE_CODE_PATTERN = re.compile(r"^(CR|C)(?:(\d{1,2})\.(\d{1,2})|(\d{2})(\d{2}))$", re.IGNORECASE)
RULE_CODE_IN_TEXT = re.compile(r"(?<![\w.])(?:CR|C)(?:\d{1,2}\.\d{1,2}|\d{4})(?!\w)(?!\.\d)", re.IGNORECASE)
WHITESPACE = re.compile(r"\s+")

MATCH_TYPE_PRIORITY = ("exact_code", "title", "concept", "keyword", "example", "content")


def normalize_rule_code(text: str) -> Optional[str]:
    """
    Normalize a rule code to its canonical ``C##.##`` form.

    ``C6.1`` and ``c0601`` both become ``C06.01``; ``cr1.2`` becomes
    ``CR01.02``. Anything else returns ``None``.
    """
    match = RULE_CODE_PATTERN.match(text.strip())
    if not match:
        return None
    prefix, major, minor, packed_major, packed_minor = match.groups()
    major = major or packed_major
    minor = minor or packed_minor
    return f"{prefix.upper()}{int(major):02d}.{int(minor):02d}"


def split_query(query: str) -> Tuple[Set[str], str]:
    """Return the normalized codes mentioned in ``query`` and the remaining phrase."""
    codes = {code for token in RULE_CODE_IN_TEXT.findall(query) if (code := normalize_rule_code(token))}
    phrase = WHITESPACE.sub(" ", RULE_CODE_IN_TEXT.sub(" ", query)).strip().lower()
    return codes, phrase


def _overlaps(term: str, query_words: Set[str]) -> bool:
    return any(word in term or term in word for word in query_words)


def score_rule(
    rule: RuleRecord,
    codes: Set[str],
    phrase: str,
    query_words: Set[str],
    weights: SearchWeights,
) -> Tuple[float, str]:
    """Score one rule, returning ``(score, match_type)``."""
    signals = dict.fromkeys(MATCH_TYPE_PRIORITY, 0.0)

    if rule.code in codes:
        signals["exact_code"] = weights.exact_code

    if phrase:
        if phrase in rule.title.lower():
            signals["title"] = weights.title_weight * weights.title_base
        if phrase in rule.description.lower():
            signals["content"] = weights.description
        example_hits = sum(1 for example in rule.examples if phrase in example.lower())
        signals["example"] = example_hits * weights.example

    if query_words:
        keyword_hits = sum(1 for keyword in rule.keywords if _overlaps(keyword, query_words))
        signals["keyword"] = keyword_hits * weights.keyword_weight * weights.keyword_base
        concept_hits = sum(1 for concept in rule.concepts if _overlaps(concept, query_words))
        signals["concept"] = concept_hits * weights.concept_weight * weights.concept_base

    score = sum(signals.values())
    match_type = next((name for name in MATCH_TYPE_PRIORITY if signals[name] > 0), "content")
    return score, match_type


def search_rules(
    rules: Sequence[RuleRecord],
    relationship_graph: Mapping[str, Tuple[RelationshipEdge, ...]],
    query: str,
    options: SearchOptions | None = None,
) -> SearchResponse:
    """
    Rank ``rules`` against ``query``.

    Args:
        rules: Every indexed rule in parse order (community first, then crew).
        relationship_graph: Edges used to attach related rules to the top hit.
        query: Free-text question or rule code.
        options: Weights, result limits, and whether to include related rules.

    Returns:
        SearchResponse: Hits with score > 0, best first, ties in parse order.
        An empty ``primary`` means nothing matched; callers must report that
        rather than invent a rule.
    """
    options = options or SearchOptions()
    codes, phrase = split_query(query or "")
    query_words = set(extract_keywords(phrase))

    hits: List[SearchHit] = []
    for rule in rules:
        score, match_type = score_rule(rule, codes, phrase, query_words, options.weights)
        if score > 0:
            hits.append(SearchHit(rule=rule, score=score, match_type=match_type))

    ranked = sorted(hits, key=lambda hit: hit.score, reverse=True)
    primary = tuple(ranked[: options.limit])

    related: Tuple[RelationshipEdge, ...] = ()
    if options.include_related and primary:
        related = tuple(relationship_graph.get(primary[0].rule.code, ())[: options.related_limit])

    meta = {
        "query": query,
        "codes": sorted(codes),
        "total_found": len(hits),
        "concepts": sorted(identify_concepts(query or "")),
        "found": bool(primary),
    }
    if not primary:
        logger.debug("[RULES MATCHER] No rule matched query %r", query)
    return SearchResponse(primary=primary, related=related, meta=meta)
