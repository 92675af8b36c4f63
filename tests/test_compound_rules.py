from rulekeeper.rules.compound_rules import (
    COMPOUND_PATTERNS,
    detect_compound_violations,
    find_rule_relationship,
    render_compound_answer,
)
from rulekeeper.rules.rule_index import load_and_index


def test_two_keywords_fire_a_pattern():
    violations = detect_compound_violations("an officer abused government power and equipment")

    assert len(violations) == 1
    violation = violations[0]
    assert violation.pattern_name == "government_corruption_power"
    assert violation.judgment == "MULTIPLE VIOLATIONS"
    assert violation.codes == ("C05.04", "C07.05")
    assert violation.matched_keywords == ("government", "abuse", "power", "equipment")
    assert violation.confidence == 80.0


def test_single_keyword_is_not_enough():
    assert detect_compound_violations("I got a random message") == ()
    assert detect_compound_violations("") == ()
    assert detect_compound_violations("   ") == ()


def test_ranked_by_confidence_and_limited_to_two():
    query = (
        "someone used discord to stream their revenge, then did a random kill that was toxic "
        "and excessive, and tried to dupe money via an exploit"
    )

    violations = detect_compound_violations(query)

    assert [violation.pattern_name for violation in violations] == ["toxic_rdm", "meta_gaming_revenge"]
    assert violations[0].confidence == 80.0
    assert len(detect_compound_violations(query, limit=3)) == 3


def test_equal_confidence_keeps_table_order():
    names = [pattern.name for pattern in COMPOUND_PATTERNS]
    query = "stream revenge and a money dupe"

    violations = detect_compound_violations(query)

    assert [violation.confidence for violation in violations] == [40.0, 40.0]
    assert names.index(violations[0].pattern_name) < names.index(violations[1].pattern_name)


def test_rule_relationships_work_in_either_order():
    assert find_rule_relationship("C09.01", "C03.03") == "VDM frequently escalates to excessive toxicity"
    assert find_rule_relationship("C03.03", "C09.01") == "VDM frequently escalates to excessive toxicity"
    assert find_rule_relationship("C01.01", "C03.03") is None


def test_render_compound_answer():
    violations = detect_compound_violations("he ran over them with a vehicle repeatedly")

    answer = render_compound_answer(violations)

    assert answer.startswith("**MULTIPLE VIOLATIONS DETECTED**\n\n**Violation 1:**")
    assert "• **C09.01 - VEHICLE DEATH MATCH**: Using vehicle as weapon against others" in answer
    assert "VDM frequently escalates to excessive toxicity." in answer
    assert "**Consequences:** Multiple rule violations" in answer
    assert render_compound_answer(()) is None


def test_resolve_attaches_compound_violations(rule_files):
    index = load_and_index(rule_files)

    response = index.resolve("he keeps trying to dupe money with an exploit")

    assert response.critical is False
    assert response.meta["compound_violations"][0].pattern_name == "exploiting_economy"


def test_critical_mapping_takes_precedence_over_compounds(rule_files):
    index = load_and_index(rule_files)

    response = index.resolve("someone keeps running over downed players with a vehicle")

    assert response.critical is True
    assert "compound_violations" not in response.meta
