"""
The rule index value object and the service that publishes it.

:func:`load_and_index` runs the whole pipeline (load, parse, index) and
returns an immutable :class:`RuleIndex`. :class:`RulesService` holds the
current index in a single attribute; a reload builds a complete replacement
first and then swaps the reference, so a query always sees one whole index,
old or new.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from rulekeeper.datatypes.rule_datatypes import (
    CompoundViolation,
    IndexStats,
    InfractionClass,
    RelationshipEdge,
    RuleExplanation,
    RuleRecord,
    RuleType,
    SearchHit,
    SearchOptions,
    SearchResponse,
)
from rulekeeper.rules.compound_rules import detect_compound_violations
from rulekeeper.rules.critical_mappings import CRITICAL_MAPPINGS, CriticalMapping, match_critical
from rulekeeper.rules.document_loader import RuleDocument, load_documents
from rulekeeper.rules.errors import IndexNotReadyError
from rulekeeper.rules.rules_indexer import RuleIndexes, build_indexes
from rulekeeper.rules.rules_matcher import normalize_rule_code, search_rules
from rulekeeper.rules.rules_parser import parse_rules
from rulekeeper.rules.rules_tables import INFRACTION_CLASSES, INFRACTION_OVERRIDES
from rulekeeper.util.logger import get_logger

logger = get_logger("rule_index")

DEFAULT_CONTEXT_BUDGET = 6000
NO_CONTEXT_NOTICE = "No specific rule was found for this query in the official documents."
CONTEXT_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class RuleIndex:
    """Immutable snapshot of every parsed rule and the indexes derived from it."""

    rules: Mapping[RuleType, Tuple[RuleRecord, ...]]
    indexes: RuleIndexes
    documents: Mapping[RuleType, RuleDocument] = field(default_factory=dict)
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def all_rules(self) -> Tuple[RuleRecord, ...]:
        """Community rules followed by crew rules, each in document order."""
        return tuple(rule for rule_type in RuleType for rule in self.rules.get(rule_type, ()))

    # --------------------------
    # Lookup
    # --------------------------
    def lookup_by_code(self, code: str) -> Optional[RuleRecord]:
        """
        Find a rule by code, normalizing forms like ``c6.1`` first.

        Community rules win over crew rules sharing a code. Unknown or
        unnormalizable codes return ``None``.
        """
        normalized = normalize_rule_code(code or "")
        if normalized is None:
            return None
        for rule in self.all_rules:
            if rule.code == normalized:
                return rule
        return None

    def related_rules(self, code: str, limit: int = 5) -> Tuple[RelationshipEdge, ...]:
        return tuple(self.indexes.relationship_graph.get(code, ())[:limit])

    # --------------------------
    # Search
    # --------------------------
    def search(self, query: str, options: SearchOptions | None = None) -> SearchResponse:
        """General weighted search; see :func:`rulekeeper.rules.rules_matcher.search_rules`."""
        return search_rules(self.all_rules, self.indexes.relationship_graph, query, options)

    def resolve(
        self,
        query: str,
        options: SearchOptions | None = None,
        mappings: Sequence[CriticalMapping] = CRITICAL_MAPPINGS,
    ) -> SearchResponse:
        """
        Answer a query with the critical mappings first, then general search.

        A critical hit short-circuits search entirely. Its single hit carries
        the parsed rule when the index has it, otherwise a record built from
        the mapping itself. Otherwise any compound violations found in the
        query are attached as ``meta["compound_violations"]``.
        """
        match = match_critical(query, mappings)
        if match is None:
            response = self.search(query, options)
            compounds = detect_compound_violations(query)
            if compounds:
                response = replace(response, meta={**response.meta, "compound_violations": compounds})
            return response

        rule = self.lookup_by_code(match.code) or RuleRecord(
            code=match.code,
            title=match.title,
            section=None,
            rule_type=RuleType.COMMUNITY,
            description=match.reasoning,
            infraction_codes=tuple((letter,) for letter in match.infraction_codes),
        )
        return SearchResponse(
            primary=(SearchHit(rule=rule, score=100.0, match_type="exact_critical"),),
            related=(),
            meta={"query": query, "total_found": 1, "found": True, "critical_match": match},
            critical=True,
        )

    # --------------------------
    # Explain
    # --------------------------
    def effective_infractions(self, rule: RuleRecord) -> Tuple[List[str], str]:
        """
        Infraction letters for ``rule`` and where they came from.

        Letters parsed from the document win; the hardcoded override table
        only fills in rules whose text has no ``Infraction Category`` line.
        """
        if rule.infraction_codes:
            return rule.infraction_letters, "document"
        if rule.code in INFRACTION_OVERRIDES:
            return list(INFRACTION_OVERRIDES[rule.code]), "override"
        return [], "none"

    def conceptual_context(self, rule: RuleRecord, per_concept: int = 3):
        context = []
        for concept in sorted(rule.concepts):
            members = self.indexes.concept_index.get(concept, ())
            if members:
                context.append((concept, tuple(members[:per_concept]), len(members)))
        return tuple(context)

    def explain(self, code: str, include_context: bool = True) -> Optional[RuleExplanation]:
        """Collect a rule with its infractions and related rules, plus a rendered summary."""
        rule = self.lookup_by_code(code)
        if rule is None:
            return None

        letters, source = self.effective_infractions(rule)
        infractions = tuple(INFRACTION_CLASSES[letter] for letter in letters if letter in INFRACTION_CLASSES)
        related = self.related_rules(rule.code, 3)
        return RuleExplanation(
            rule=rule,
            infractions=infractions,
            infraction_source=source,
            related=related,
            conceptual_context=self.conceptual_context(rule) if include_context else (),
            rendered=render_explanation(rule, infractions, related),
        )

    def stats(self) -> IndexStats:
        community = len(self.rules.get(RuleType.COMMUNITY, ()))
        crew = len(self.rules.get(RuleType.CREW, ()))
        return IndexStats(
            total_rules=community + crew,
            community_rules=community,
            crew_rules=crew,
            concept_count=len(self.indexes.concept_index),
            keyword_count=len(self.indexes.keyword_index),
            section_count=len(self.indexes.section_index),
            relationship_edge_count=self.indexes.edge_count,
            built_at=self.built_at,
        )


def render_explanation(
    rule: RuleRecord,
    infractions: Sequence[InfractionClass],
    related: Sequence[RelationshipEdge],
) -> str:
    """Plain-text explanation of a rule, one bulleted block per populated field."""
    parts = [f"{rule.heading}:", rule.description or "No description available."]

    def block(heading: str, lines: Sequence[str]) -> None:
        if lines:
            parts.append(heading + "\n" + "\n".join(f"• {line}" for line in lines))

    block("What's Not Allowed:", rule.prohibitions)
    block("Requirements:", rule.requirements)
    block("Examples:", rule.examples)
    block("Consequences:", [f"{inf.name}: {inf.description}" for inf in infractions])
    # a target can be linked by both a concept and a keyword edge
    block("Related Rules:", list(dict.fromkeys(edge.target.heading for edge in related)))
    if rule.approval_required:
        parts.append(f"Approval required: {rule.approval_required}")
    return "\n\n".join(parts)


def build_index(documents: Mapping[RuleType, RuleDocument]) -> RuleIndex:
    """Parse and index already loaded documents."""
    rules: Dict[RuleType, Tuple[RuleRecord, ...]] = {
        rule_type: tuple(parse_rules(document.text, rule_type))
        for rule_type, document in documents.items()
    }
    flat = [rule for rule_type in RuleType for rule in rules.get(rule_type, ())]
    return RuleIndex(rules=rules, indexes=build_indexes(flat), documents=dict(documents))


def load_and_index(paths: Mapping[RuleType, Path | str | None]) -> RuleIndex:
    """
    Load both rule documents and build a complete index.

    Missing documents fall back to the embedded text, so this succeeds even
    when nothing exists at ``paths``. Calling it again builds a fresh,
    independent index.
    """
    index = build_index(load_documents(paths))
    stats = index.stats()
    logger.info(
        "[RULE INDEX] Built index with %d rules (%d community, %d crew), %d concepts, %d relationship edges",
        stats.total_rules,
        stats.community_rules,
        stats.crew_rules,
        stats.concept_count,
        stats.relationship_edge_count,
    )
    return index


def build_rules_context(
    hits: Sequence[SearchHit],
    budget: int = DEFAULT_CONTEXT_BUDGET,
    compounds: Sequence[CompoundViolation] = (),
) -> str:
    """
    Render retrieved rules for the completion service's system prompt.

    Each rule becomes a ``"<code> - <title>:\\n<raw text body>"`` block; blocks
    are separated by blank lines and the whole string is cut at ``budget``
    characters. Compound violations, if any, lead as one line each.
    """
    blocks = [
        "Possible compound violation: "
        + "; ".join(f"{rule.code} - {rule.title} ({rule.reasoning})" for rule in violation.rules)
        for violation in compounds
    ]
    if not hits and not blocks:
        return NO_CONTEXT_NOTICE

    seen = set()
    for hit in hits:
        rule = hit.rule
        if (rule.rule_type, rule.code) in seen:
            continue
        seen.add((rule.rule_type, rule.code))
        body_lines = rule.raw_text.splitlines()[1:] if rule.raw_text else [rule.description]
        blocks.append(f"{rule.heading}:\n" + "\n".join(body_lines))

    return CONTEXT_SEPARATOR.join(blocks)[: max(budget, 0)]


class RulesService:
    """
    Holder of the current :class:`RuleIndex`.

    Reads take one snapshot of :attr:`current` per call. :meth:`reload` builds
    the replacement off to the side and publishes it with a single attribute
    assignment; a failed build leaves the previous index in place.
    """

    def __init__(self, paths: Mapping[RuleType, Path | str | None] | None = None) -> None:
        self.paths: Dict[RuleType, Path | str | None] = dict(paths or {})
        self._index: Optional[RuleIndex] = None

    @property
    def ready(self) -> bool:
        return self._index is not None

    @property
    def current(self) -> RuleIndex:
        index = self._index
        if index is None:
            raise IndexNotReadyError()
        return index

    def reload(self, paths: Mapping[RuleType, Path | str | None] | None = None) -> RuleIndex:
        """Rebuild the index from ``paths`` (or the stored paths) and publish it."""
        if paths is not None:
            self.paths = dict(paths)
        try:
            index = load_and_index(self.paths)
        except Exception:
            logger.exception("[RULES SERVICE] Rebuild failed; keeping the previous index")
            raise
        self._index = index
        return index

    def search(self, query: str, options: SearchOptions | None = None) -> SearchResponse:
        return self.current.search(query, options)

    def resolve(self, query: str, options: SearchOptions | None = None) -> SearchResponse:
        return self.current.resolve(query, options)

    def lookup_by_code(self, code: str) -> Optional[RuleRecord]:
        return self.current.lookup_by_code(code)

    def explain(self, code: str) -> Optional[RuleExplanation]:
        return self.current.explain(code)

    def stats(self) -> IndexStats:
        return self.current.stats()

    def answer_context(
        self,
        query: str,
        options: SearchOptions | None = None,
        budget: int = DEFAULT_CONTEXT_BUDGET,
    ) -> Tuple[SearchResponse, str]:
        """Resolve ``query`` and render the prompt context from the same snapshot."""
        response = self.current.resolve(query, options)
        compounds = response.meta.get("compound_violations", ())
        return response, build_rules_context(response.primary, budget, compounds)


# Shared application-wide rules service, loaded at startup
rules_service = RulesService()
