"""
Field extraction for finalized rules.

Every function here is pure and works on the content lines collected for a
single rule. The parser calls them when it closes a rule; the matcher reuses
:func:`extract_keywords` and :func:`identify_concepts` on query text so both
sides tokenize identically.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence, Tuple

from rulekeeper.datatypes.rule_datatypes import InfractionSequence
from rulekeeper.rules.rules_tables import (
    CONCEPT_KEYWORDS,
    CONTEXT_PATTERNS,
    MIN_KEYWORD_LENGTH,
    STOPWORDS,
)

MAX_EXAMPLES = 10
MAX_PROHIBITIONS = 5
MAX_REQUIREMENTS = 5
MAX_CONSEQUENCES = 3
MAX_EXAMPLE_LENGTH = 200
DESCRIPTION_FALLBACK_LENGTH = 200

SENTENCE_SPLIT = re.compile(r"[.!?]+")
NON_WORD = re.compile(r"[^\w\s]")
CAPS_LABEL = re.compile(r"^[A-Z\s]+:$")
BULLET = re.compile(r"^(?:[•\-*]|\d+[.)])\s*")
EXAMPLE_CUE = re.compile(
    r"\b(?:examples?(?:\s+of\s+this)?\s+(?:are|include|includes|of)\b|examples?\s*:|here\s+are\b|such\s+as\b)\s*:?",
    re.IGNORECASE,
)
EXAMPLE_ITEM_SPLIT = re.compile(r"\s*(?:,\s*(?:and\s+|or\s+)?|;\s*|\s+and\s+)", re.IGNORECASE)

PROHIBITION_PATTERNS = (
    re.compile(r"(?:is\s+)?(?:not\s+)?(?:permitted|allowed|acceptable)", re.IGNORECASE),
    re.compile(r"(?:cannot|can't|must not|should not|shall not)", re.IGNORECASE),
    re.compile(r"prohibited|forbidden|banned|restricted", re.IGNORECASE),
    re.compile(r"avoid\s+(?:doing|engaging)", re.IGNORECASE),
)
REQUIREMENT_PATTERNS = (
    re.compile(r"(?:must|required to|expected to|mandated to)", re.IGNORECASE),
    re.compile(r"(?:shall|should|ought to)", re.IGNORECASE),
    re.compile(r"(?:minimum|maximum).*(?:of|is)", re.IGNORECASE),
    re.compile(r"limited to", re.IGNORECASE),
)
CONSEQUENCE_PATTERNS = (
    re.compile(r"(?:will result in|leads? to|results? in)", re.IGNORECASE),
    re.compile(r"(?:consequence|punishment|penalty)", re.IGNORECASE),
    re.compile(r"(?:suspension|ban|removal|deletion)", re.IGNORECASE),
)
COMPILED_CONTEXT_PATTERNS = {
    tag: tuple(re.compile(pattern) for pattern in patterns)
    for tag, patterns in CONTEXT_PATTERNS.items()
}


def split_sentences(text: str) -> List[str]:
    """Split on sentence punctuation, dropping empty fragments."""
    return [part.strip() for part in SENTENCE_SPLIT.split(text) if part.strip()]


def extract_description(content: str) -> str:
    """First sentence longer than 10 characters, else the leading 200 characters."""
    for sentence in split_sentences(content):
        if len(sentence) > 10:
            return sentence
    return content.strip()[:DESCRIPTION_FALLBACK_LENGTH]


def _split_example_items(text: str) -> List[str]:
    items = (item.strip(" .;:") for item in EXAMPLE_ITEM_SPLIT.split(text))
    return [item for item in items if len(item) > 5]


def extract_examples(lines: Sequence[str]) -> Tuple[str, ...]:
    """
    Collect illustrative examples introduced by an examples cue.

    A cue with inline text ("Examples of this include X, Y, and Z") yields the
    listed items. A bare cue ("Examples:") opens a list that continues over the
    following bullet lines until a non-bullet line, an ``ALL CAPS:`` label, or
    an overlong line.
    """
    examples: List[str] = []
    collecting = False

    for line in lines:
        cue = EXAMPLE_CUE.search(line)
        if cue:
            trailing = line[cue.end():].strip()
            if trailing:
                examples.extend(_split_example_items(trailing))
                collecting = False
            else:
                collecting = True
            continue

        if not collecting:
            continue
        if CAPS_LABEL.match(line) or len(line) > MAX_EXAMPLE_LENGTH or not BULLET.match(line):
            collecting = False
            continue
        item = BULLET.sub("", line).strip(" .")
        if len(item) > 5:
            examples.append(item)

    return tuple(examples[:MAX_EXAMPLES])


def _classify(content: str, patterns: Iterable[re.Pattern[str]], cap: int) -> Tuple[str, ...]:
    patterns = tuple(patterns)
    matched = [s for s in split_sentences(content) if any(p.search(s) for p in patterns)]
    return tuple(matched[:cap])


def extract_prohibitions(content: str) -> Tuple[str, ...]:
    return _classify(content, PROHIBITION_PATTERNS, MAX_PROHIBITIONS)


def extract_requirements(content: str) -> Tuple[str, ...]:
    return _classify(content, REQUIREMENT_PATTERNS, MAX_REQUIREMENTS)


def extract_consequences(content: str) -> Tuple[str, ...]:
    return _classify(content, CONSEQUENCE_PATTERNS, MAX_CONSEQUENCES)


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens with punctuation replaced by whitespace."""
    return NON_WORD.sub(" ", text.lower()).split()


def extract_keywords(text: str) -> frozenset[str]:
    """Significant tokens: longer than three characters and not a stopword."""
    return frozenset(
        token for token in tokenize(text)
        if len(token) >= MIN_KEYWORD_LENGTH and token not in STOPWORDS
    )


def identify_concepts(text: str) -> frozenset[str]:
    """Concept tags whose phrases occur anywhere in ``text``."""
    lowered = text.lower()
    return frozenset(
        concept for concept, phrases in CONCEPT_KEYWORDS.items()
        if any(phrase in lowered for phrase in phrases)
    )


def extract_context_tags(content: str) -> Tuple[str, ...]:
    lowered = content.lower()
    return tuple(
        tag for tag, patterns in COMPILED_CONTEXT_PATTERNS.items()
        if any(pattern.search(lowered) for pattern in patterns)
    )


def parse_infraction_sequence(sequence: str) -> InfractionSequence:
    """
    Parse the bracketed body of an ``Infraction Category`` line.

    ``"C > D > E + GB"`` becomes ``(("C",), ("D",), ("E", "GB"))``. Empty
    steps are dropped so stray separators never produce blank letters.
    """
    steps = []
    for step in sequence.split(">"):
        letters = tuple(letter.strip().upper() for letter in step.split("+") if letter.strip())
        if letters:
            steps.append(letters)
    return tuple(steps)
