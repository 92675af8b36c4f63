"""
Rule document parser.

The parser is a small explicit state machine. Each line is classified as a
section header, rule header, cue, content, or blank line; a rule is finalized
when the next section or rule header arrives, or at end of input. Arbitrary
text never raises: anything that does not match the grammar is inert content.

Document grammar::

    SECTION 6 - GROUP CONDUCT:
    C06.01 - PLAYER ROAMING LIMITATIONS:
    General Information: Players who are not in a crew are limited to 6 people.
    Examples of this include ...
    Infraction Category: [A > B > C > D > E]
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from rulekeeper.datatypes.rule_datatypes import InfractionSequence, RuleRecord, RuleSection, RuleType
from rulekeeper.rules import rule_extraction as extract
from rulekeeper.rules.rules_tables import severity_of
from rulekeeper.util.logger import get_logger

logger = get_logger("rules_parser")


SECTION_HEADER_PATTERN = re.compile(r"^SECTION\s+(\d+)\s*-\s*(.+?):")
RULE_HEADER_PATTERN = re.compile(r"^((?:CR|C)\d{2}\.\d{2})\s*-\s*(.+?):\s*(.*)$")
INFRACTION_PATTERN = re.compile(r"^Infraction Category:\s*\[(.+?)\]", re.IGNORECASE)
APPROVAL_PATTERN = re.compile(r"^Approval required:\s*(.+)", re.IGNORECASE)
GENERAL_INFO_PATTERN = re.compile(r"^General Information:\s*(.*)", re.IGNORECASE)


class ParserState(Enum):
    BEFORE_RULE = "before_rule"
    IN_RULE = "in_rule"


class LineKind(Enum):
    SECTION_HEADER = "section_header"
    RULE_HEADER = "rule_header"
    CUE = "cue"
    CONTENT = "content"
    BLANK = "blank"


def classify_line(line: str) -> Tuple[LineKind, Optional[re.Match[str]]]:
    """Classify a stripped line, returning the header/cue match when there is one."""
    if not line:
        return LineKind.BLANK, None
    if match := SECTION_HEADER_PATTERN.match(line):
        return LineKind.SECTION_HEADER, match
    if match := RULE_HEADER_PATTERN.match(line):
        return LineKind.RULE_HEADER, match
    for pattern in (INFRACTION_PATTERN, APPROVAL_PATTERN, GENERAL_INFO_PATTERN):
        if match := pattern.match(line):
            return LineKind.CUE, match
    return LineKind.CONTENT, None


@dataclass
class _OpenRule:
    """Mutable accumulator for the rule currently being read."""

    code: str
    title: str
    section: Optional[RuleSection]
    line_number: int
    raw_lines: List[str] = field(default_factory=list)
    content_lines: List[str] = field(default_factory=list)
    infractions: InfractionSequence = ()
    approval_required: Optional[str] = None


def finalize_rule(rule: _OpenRule, rule_type: RuleType) -> RuleRecord:
    """Derive every structured field and freeze the accumulated rule."""
    content = " ".join(rule.content_lines)
    searchable = f"{rule.title} {content}"
    return RuleRecord(
        code=rule.code,
        title=rule.title,
        section=rule.section,
        rule_type=rule_type,
        raw_text="\n".join(rule.raw_lines),
        description=extract.extract_description(content) if content else "",
        examples=extract.extract_examples(rule.content_lines),
        prohibitions=extract.extract_prohibitions(content),
        requirements=extract.extract_requirements(content),
        consequences=extract.extract_consequences(content),
        infraction_codes=rule.infractions,
        approval_required=rule.approval_required,
        context_tags=extract.extract_context_tags(content),
        keywords=extract.extract_keywords(searchable),
        concepts=extract.identify_concepts(searchable),
        severity=severity_of(letter for step in rule.infractions for letter in step),
    )


class RulesParser:
    """
    Line-classifying state machine that turns document text into rule records.

    A parser instance holds no state between calls to :meth:`parse`, so the
    same text always yields an identical sequence of records.
    """

    def parse(self, text: str, rule_type: RuleType) -> List[RuleRecord]:
        """
        Parse ``text`` into rule records in document order.

        Args:
            text: Raw document text.
            rule_type: Partition the records belong to.

        Returns:
            List[RuleRecord]: One record per distinct rule code. A repeated
            code keeps its first occurrence and the duplicate is logged.
        """
        records: List[RuleRecord] = []
        seen_codes: set[str] = set()
        state = ParserState.BEFORE_RULE
        section: Optional[RuleSection] = None
        current: Optional[_OpenRule] = None

        def close() -> None:
            nonlocal current, state
            if current is None:
                return
            if current.code in seen_codes:
                logger.warning(
                    "[RULES PARSER] Duplicate %s rule code %s at line %d ignored",
                    rule_type, current.code, current.line_number,
                )
            else:
                seen_codes.add(current.code)
                records.append(finalize_rule(current, rule_type))
            current = None
            state = ParserState.BEFORE_RULE

        for line_number, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            kind, match = classify_line(line)

            if kind is LineKind.BLANK:
                continue

            if kind is LineKind.SECTION_HEADER:
                close()
                section = RuleSection(int(match.group(1)), match.group(2).strip())
                continue

            if kind is LineKind.RULE_HEADER:
                close()
                current = _OpenRule(
                    code=match.group(1).upper(),
                    title=match.group(2).strip(),
                    section=section,
                    line_number=line_number,
                    raw_lines=[line],
                )
                if trailing := match.group(3).strip():
                    current.content_lines.append(trailing)
                state = ParserState.IN_RULE
                continue

            if state is ParserState.BEFORE_RULE or current is None:
                logger.debug("[RULES PARSER] Line %d outside any %s rule ignored: %.80s", line_number, rule_type, line)
                continue

            current.raw_lines.append(line)
            if kind is LineKind.CUE:
                self._apply_cue(current, match, line_number)
            elif not extract.CAPS_LABEL.match(line):
                current.content_lines.append(line)

        close()
        logger.debug("[RULES PARSER] Parsed %d %s rules", len(records), rule_type)
        return records

    @staticmethod
    def _apply_cue(rule: _OpenRule, match: re.Match[str], line_number: int) -> None:
        pattern = match.re
        if pattern is INFRACTION_PATTERN:
            sequence = extract.parse_infraction_sequence(match.group(1))
            if not sequence:
                logger.debug("[RULES PARSER] Empty infraction category for %s at line %d", rule.code, line_number)
            rule.infractions = sequence
        elif pattern is APPROVAL_PATTERN:
            rule.approval_required = match.group(1).strip()
        elif pattern is GENERAL_INFO_PATTERN and (payload := match.group(1).strip()):
            rule.content_lines.append(payload)


def parse_rules(text: str, rule_type: RuleType) -> List[RuleRecord]:
    """Parse a rule document with a fresh :class:`RulesParser`."""
    return RulesParser().parse(text, rule_type)
