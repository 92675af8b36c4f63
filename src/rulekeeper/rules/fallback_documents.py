"""Embedded rule documents used when the configured files are unavailable.

The text follows the same grammar as the published documents so it goes
through the regular parser: ``SECTION n - Title:`` headers, ``CODE - Title:``
rule headers, and the ``General Information:`` / ``Infraction Category:`` cues.
"""

from __future__ import annotations

from rulekeeper.datatypes.rule_datatypes import RuleType


COMMUNITY_FALLBACK = """\
SECTION 1 - PAGE INFORMATION:
C01.01 - JURISDICTIONS:
General Information: These are the official community regulatory guidelines of the public roleplay server.
They apply to every member while connected to the server and within the community Discord.

C01.03 - INFRACTION CLASSIFICATIONS:
General Information: Classifications A through F determine the severity and consequences of an infraction.
Reaching 125 infraction points results in community removal.

SECTION 2 - VERBAL CONDUCT & BEHAVIOR:
C02.01 - EXTERNAL TARGETING & COMMUNICATION:
General Information: Taking roleplay conflicts outside of character to target or harass others is prohibited.
Examples of this include degrading someone's reputation on Discord, contacting a player to harass them, and carrying roleplay arguments into external communication.
Infraction Category: [E > F]

C02.02 - BREAKING CHARACTER:
General Information: Players must stay in character and use appropriate roleplay terminology at all times.
Examples of this include referring to staff as angels or gods, mentioning the waiting room, and talking about infraction points or community guidelines in character.
Infraction Category: [A > B > C > D > E]

SECTION 3 - UNREASONABLE CONDUCT:
C03.03 - EXCESSIVE TOXICITY:
General Information: Behaviours intended to cause harm, malice, or disturbance to other players are not permitted.
Examples of this include excessive mag dumping, running over downed bodies repeatedly, and carrying a downed player around for 20 minutes.
Repeated toxic behaviour will result in a suspension.
Infraction Category: [C > E > F]

SECTION 4 - CHARACTER CONDUCT:
C04.03 - VALUE OF LIFE:
General Information: Players must value their character's life realistically and comply when outgunned.
A character that is outgunned 3 to 1 or greater is expected to comply with the aggressors.
Examples of this include being outgunned 3 to 1 and being outgunned 5 to 2.
Infraction Category: [C > D > E > F]

C04.06 - RETURNING TO SCENE & COMBAT TIMER:
General Information: Players cannot re-engage in a scene after being downed.
A 30 minute combat timer applies after receiving medical care before the character may engage in combat again.
Infraction Category: [A > C > D > E]

SECTION 6 - GROUP CONDUCT:
C06.01 - PLAYER ROAMING LIMITATIONS:
General Information: Players who are not in an official crew are limited to 6 people when roaming or committing crimes together.
This maximum applies to store robberies, heists, and any group activity.
Examples of this include robbing a store with 6 people and roaming as a group of 6 people.
Exceeding the group limit will result in an infraction for every member involved.
Infraction Category: [A > B > C > D > E]

SECTION 7 - GAMEPLAY INTEGRITY:
C07.03 - META GAMING & EXTERNAL INFORMATION:
General Information: Using information obtained outside of roleplay within roleplay is prohibited.
Examples of this include stream sniping, using Discord to communicate during a scene, and acting on outside information.
Infraction Category: [B > D > E > F]

C07.07 - EXPLOITING:
General Information: Taking advantage of bugs or unintended server features is strictly prohibited.
Any exploit must be reported to staff immediately.
Infraction Category: [E > F + CD]
"""

CREW_FALLBACK = """\
SECTION 11 - CREW OPERATIONS:
C11.01 - ROAMING LIMITATIONS:
General Information: Official crew members can roam with up to 16 people.
When engaging with law enforcement the crew is limited to 6 people.
Infraction Category: [B > E]

C11.02 - CREW CONFLICTS:
General Information: Crew conflicts must be declared through the crew conflict process before violence occurs.
Conflicts are not permitted in safe zones or hospitals.
Infraction Category: [C > D > E]

SECTION 12 - CREW ADMINISTRATION:
C12.01 - CREW LEADERSHIP:
General Information: Every crew must maintain an active leader who is responsible for the conduct of crew members.
Approval required: Crew Management+
Infraction Category: [A > B > C]
"""

FALLBACK_DOCUMENTS = {
    RuleType.COMMUNITY: COMMUNITY_FALLBACK,
    RuleType.CREW: CREW_FALLBACK,
}


def fallback_for(rule_type: RuleType) -> str:
    """Return the embedded document text for ``rule_type``."""
    return FALLBACK_DOCUMENTS[rule_type]
