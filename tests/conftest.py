"""
Pytest configuration and fixtures for RuleKeeper tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from rulekeeper.datatypes.rule_datatypes import RuleType  # noqa: E402


COMMUNITY_TEXT = """\
COMMUNITY REGULATORY GUIDELINES AND RULES
Last updated by staff.

SECTION 6 - GROUP CONDUCT:
C06.01 - PLAYER ROAMING LIMITATIONS:
General Information: Players who are not in a crew are limited to 6 people when they roam together.
Examples of this include robbing a store with 6 people, and roaming in a convoy of 6 people.
Infraction Category: [A > B > C > D > E]

SECTION 7 - GAMEPLAY INTEGRITY:
C07.03 - META GAMING & EXTERNAL INFORMATION:
General Information: Using information obtained outside of roleplay is prohibited.
Examples:
- stream sniping another streamer
- reading a Discord channel during a scene
Infraction Category: [B > D > E > F]
"""

CREW_TEXT = """\
SECTION 11 - CREW OPERATIONS:
C11.01 - ROAMING LIMITATIONS:
General Information: Crew members can roam with up to 16 people.
Infraction Category: [B > E]
"""


@pytest.fixture()
def rule_files(tmp_path: Path):
    """Write both rule documents to disk and return their paths by type."""
    community = tmp_path / "community.txt"
    crew = tmp_path / "crew.txt"
    community.write_text(COMMUNITY_TEXT, encoding="utf-8")
    crew.write_text(CREW_TEXT, encoding="utf-8")
    return {RuleType.COMMUNITY: community, RuleType.CREW: crew}


@pytest.fixture()
def missing_rule_files(tmp_path: Path):
    return {
        RuleType.COMMUNITY: tmp_path / "missing_community.txt",
        RuleType.CREW: tmp_path / "missing_crew.txt",
    }
