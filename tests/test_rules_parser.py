"""Tests for the rule document parser and field extraction."""

from rulekeeper.datatypes.rule_datatypes import RuleSection, RuleType
from rulekeeper.rules import rule_extraction as extract
from rulekeeper.rules.fallback_documents import COMMUNITY_FALLBACK, CREW_FALLBACK
from rulekeeper.rules.rules_parser import LineKind, RulesParser, classify_line, parse_rules

from conftest import COMMUNITY_TEXT, CREW_TEXT


def test_parse_extracts_structured_fields():
    rules = parse_rules(COMMUNITY_TEXT, RuleType.COMMUNITY)

    assert [rule.code for rule in rules] == ["C06.01", "C07.03"]
    roaming = rules[0]
    assert roaming.title == "PLAYER ROAMING LIMITATIONS"
    assert roaming.section == RuleSection(6, "GROUP CONDUCT")
    assert roaming.rule_type is RuleType.COMMUNITY
    assert roaming.description == "Players who are not in a crew are limited to 6 people when they roam together"
    assert roaming.examples == ("robbing a store with 6 people", "roaming in a convoy of 6 people")
    assert roaming.infraction_codes == (("A",), ("B",), ("C",), ("D",), ("E",))
    assert roaming.infraction_letters == ["A", "B", "C", "D", "E"]
    assert roaming.severity == 5
    assert {"roaming", "crew_rules", "groups"} <= roaming.concepts
    assert "roaming" in roaming.keywords
    assert roaming.raw_text.splitlines()[0] == "C06.01 - PLAYER ROAMING LIMITATIONS:"
    assert roaming.requirements


def test_bare_examples_cue_collects_bullets():
    meta = parse_rules(COMMUNITY_TEXT, RuleType.COMMUNITY)[1]

    assert meta.examples == ("stream sniping another streamer", "reading a Discord channel during a scene")
    assert meta.prohibitions == ("Using information obtained outside of roleplay is prohibited",)


def test_parse_is_idempotent():
    parser = RulesParser()

    first = parser.parse(COMMUNITY_FALLBACK, RuleType.COMMUNITY)
    second = parser.parse(COMMUNITY_FALLBACK, RuleType.COMMUNITY)

    assert first == second
    assert [rule.raw_text for rule in first] == [rule.raw_text for rule in second]


def test_codes_are_unique_per_type():
    for text, rule_type in ((COMMUNITY_FALLBACK, RuleType.COMMUNITY), (CREW_FALLBACK, RuleType.CREW)):
        codes = [rule.code for rule in parse_rules(text, rule_type)]
        assert len(codes) == len(set(codes))


def test_duplicate_code_keeps_first_occurrence():
    text = (
        "C01.01 - FIRST TITLE:\n"
        "General Information: The original wording of this rule.\n"
        "C01.01 - SECOND TITLE:\n"
        "General Information: A later duplicate that should be ignored.\n"
    )

    rules = parse_rules(text, RuleType.COMMUNITY)

    assert len(rules) == 1
    assert rules[0].title == "FIRST TITLE"
    assert rules[0].description == "The original wording of this rule"


def test_section_header_closes_open_rule():
    text = (
        "SECTION 1 - ONE:\n"
        "C01.01 - FIRST:\n"
        "General Information: Belongs to the first rule only.\n"
        "SECTION 2 - TWO:\n"
        "This orphan line sits between a section header and the next rule.\n"
        "C02.01 - SECOND:\n"
        "General Information: Belongs to the second rule.\n"
    )

    first, second = parse_rules(text, RuleType.COMMUNITY)

    assert "orphan" not in first.raw_text
    assert "orphan" not in second.raw_text
    assert first.section.number == 1
    assert second.section == RuleSection(2, "TWO")


def test_header_trailing_text_and_approval_line():
    text = (
        "C12.01 - CREW LEADERSHIP: Every crew must keep an active leader at all times.\n"
        "Approval required: Crew Management+\n"
        "Infraction Category: [E > F + CD]\n"
    )

    (rule,) = parse_rules(text, RuleType.CREW)

    assert rule.description == "Every crew must keep an active leader at all times"
    assert rule.approval_required == "Crew Management+"
    assert rule.infraction_codes == (("E",), ("F", "CD"))
    assert rule.severity == 7


def test_caps_labels_are_kept_in_raw_text_only():
    text = "C03.01 - RULE:\nGeneral Information: Short body sentence here.\nNOTES:\n"

    (rule,) = parse_rules(text, RuleType.COMMUNITY)

    assert "NOTES:" in rule.raw_text
    assert "NOTES" not in rule.description


def test_garbage_input_never_raises():
    text = "random words\n:::\nC1.1 - not a rule header\nSECTION x - nope:\n\x00\x01\n"

    assert parse_rules(text, RuleType.COMMUNITY) == []
    assert parse_rules("", RuleType.CREW) == []


def test_rule_without_infraction_line_has_empty_sequence():
    (rule,) = parse_rules("C05.05 - QUIET RULE:\nGeneral Information: Nothing to see here today.\n", RuleType.COMMUNITY)

    assert rule.infraction_codes == ()
    assert rule.severity == 0


def test_crew_prefix_codes_are_recognised():
    (rule,) = parse_rules("CR01.02 - CREW REGISTRATION:\nGeneral Information: Crews register with staff.\n", RuleType.CREW)

    assert rule.code == "CR01.02"


def test_classify_line_kinds():
    assert classify_line("")[0] is LineKind.BLANK
    assert classify_line("SECTION 3 - UNREASONABLE CONDUCT:")[0] is LineKind.SECTION_HEADER
    assert classify_line("C03.03 - EXCESSIVE TOXICITY:")[0] is LineKind.RULE_HEADER
    assert classify_line("Infraction Category: [A > B]")[0] is LineKind.CUE
    assert classify_line("Just a sentence.")[0] is LineKind.CONTENT


def test_parse_infraction_sequence_drops_empty_steps():
    assert extract.parse_infraction_sequence("C > D > E + GB") == (("C",), ("D",), ("E", "GB"))
    assert extract.parse_infraction_sequence(" > a >  ") == (("A",),)
    assert extract.parse_infraction_sequence("") == ()


def test_keywords_skip_stopwords_and_short_tokens():
    keywords = extract.extract_keywords("The crew MUST roam, and they will rob a bank!")

    assert keywords == frozenset({"crew", "roam", "bank"})


def test_description_falls_back_to_leading_text():
    assert extract.extract_description("Too short. Tiny.") == "Too short. Tiny."


def test_back_to_back_headers_and_malformed_header_inside_rule():
    text = (
        "C01.01 - FIRST RULE:\n"
        "C01.02 - SECOND RULE:\n"
        "General Information: The second rule has a body.\n"
        "C01.03 - missing colon title\n"
    )

    first, second = parse_rules(text, RuleType.COMMUNITY)

    assert first.code == "C01.01"
    assert first.description == ""
    assert first.examples == ()
    assert second.code == "C01.02"
    assert "C01.03 - missing colon title" in second.raw_text
