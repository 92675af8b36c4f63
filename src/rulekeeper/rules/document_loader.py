"""Loading of the raw community and crew rule documents."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping

from rulekeeper.datatypes.rule_datatypes import RuleType
from rulekeeper.rules.fallback_documents import fallback_for
from rulekeeper.util.logger import get_logger

logger = get_logger("document_loader")


@dataclass(frozen=True, slots=True)
class RuleDocument:
    """Raw text of one rule document and where it came from."""

    rule_type: RuleType
    text: str
    path: Path | None
    fallback: bool = False


def load_document(rule_type: RuleType, path: Path | str | None) -> RuleDocument:
    """
    Read one rule document, substituting the embedded fallback when unavailable.

    A missing, unreadable, or empty file never raises: the condition is logged
    with the offending path and the embedded text for ``rule_type`` is used.

    Args:
        rule_type: Which document is being loaded.
        path: File to read. ``None`` goes straight to the fallback.

    Returns:
        RuleDocument: The loaded text, flagged when it is the fallback.
    """
    if path is None:
        logger.warning("[DOCUMENT LOADER] No path configured for %s rules; using embedded rules", rule_type)
        return RuleDocument(rule_type, fallback_for(rule_type), None, fallback=True)

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("[DOCUMENT LOADER] %s rules file not found at %s; using embedded rules", rule_type, path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("[DOCUMENT LOADER] Could not read %s rules file %s: %s; using embedded rules", rule_type, path, exc)
    else:
        if text.strip():
            logger.info("[DOCUMENT LOADER] Loaded %s rules document %s (%d characters)", rule_type, path.name, len(text))
            return RuleDocument(rule_type, text, path)
        logger.warning("[DOCUMENT LOADER] %s rules file %s is empty; using embedded rules", rule_type, path)

    return RuleDocument(rule_type, fallback_for(rule_type), path, fallback=True)


def load_documents(paths: Mapping[RuleType, Path | str | None]) -> Dict[RuleType, RuleDocument]:
    """Load every rule type, in ``RuleType`` order, from ``paths``."""
    return {rule_type: load_document(rule_type, paths.get(rule_type)) for rule_type in RuleType}
