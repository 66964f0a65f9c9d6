import json

import pytest

from src.quickcode.domain.models.code_suggestion import CodeSuggestion
from src.quickcode.domain.models.conflict import ConflictOutcome, ConflictStatus
from src.quickcode.services.conflicts.checker import ConflictChecker
from src.quickcode.services.conflicts.rules import (
    DEFAULT_RULES,
    ConflictRule,
    load_pairwise_rules,
    mutually_exclusive,
    rules_from_config,
)


def _codes(*literals):
    return [CodeSuggestion(code=c, type="CPT", description=c, confidence=0.9, status="accepted") for c in literals]


@pytest.fixture
def checker():
    return ConflictChecker(rules=DEFAULT_RULES, delay_seconds=0)


async def test_empty_accepted_set_is_info(checker):
    outcome = await checker.check([])

    assert outcome == ConflictOutcome.info("No accepted codes to check.")
    assert outcome.status == ConflictStatus.INFO


async def test_empty_set_does_not_consult_rules():
    calls = []
    rule = ConflictRule(predicate=lambda codes: calls.append(codes) or True, reason="always")
    outcome = await ConflictChecker(rules=[rule], delay_seconds=0).check([])

    assert outcome.status == ConflictStatus.INFO
    assert calls == []


async def test_seed_rule_reports_conflict(checker):
    outcome = await checker.check(_codes("99214", "99396"))

    assert outcome.status == ConflictStatus.CONFLICT
    assert [c.reason for c in outcome.conflicts] == [
        "Conflict: 99214 and 99396 generally not billable together."
    ]


async def test_single_diagnosis_is_clean(checker):
    outcome = await checker.check(_codes("E11.9"))

    assert outcome == ConflictOutcome.clean()
    assert outcome.message == "No NCCI edit conflicts found."


async def test_every_matching_rule_is_reported():
    rules = [
        mutually_exclusive("99214", "99396"),
        mutually_exclusive("93306", "93307", reason="Echo codes are mutually exclusive."),
        ConflictRule(predicate=lambda codes: "00000" in codes, reason="never"),
    ]
    outcome = await ConflictChecker(rules=rules, delay_seconds=0).check(_codes("99214", "99396", "93306", "93307"))

    assert [c.reason for c in outcome.conflicts] == [
        "Conflict: 99214 and 99396 generally not billable together.",
        "Echo codes are mutually exclusive.",
    ]


async def test_delay_does_not_change_outcome():
    outcome = await ConflictChecker(rules=DEFAULT_RULES, delay_seconds=0.01).check(_codes("99214", "99396"))

    assert outcome.has_conflicts


def test_load_rules_from_json_array(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(
        json.dumps(
            [
                {"codes": ["93306", "93307"], "reason": "Echo codes are mutually exclusive."},
                {"codes": ["99213", "99214"]},
                {"codes": ["only-one"]},
            ]
        ),
        encoding="utf-8",
    )

    rules = load_pairwise_rules(path)

    assert [r.reason for r in rules] == [
        "Echo codes are mutually exclusive.",
        "Conflict: 99213 and 99214 generally not billable together.",
    ]
    assert rules[0].matches(frozenset({"93306", "93307"}))
    assert not rules[0].matches(frozenset({"93306"}))


def test_load_rules_from_jsonl(tmp_path):
    path = tmp_path / "rules.jsonl"
    path.write_text('{"codes": ["A", "B"], "reason": "A with B"}\n\n{"codes": ["C", "D"]}\n', encoding="utf-8")

    rules = load_pairwise_rules(path)

    assert len(rules) == 2


def test_missing_rules_file_raises(tmp_path):
    with pytest.raises(RuntimeError):
        load_pairwise_rules(tmp_path / "absent.json")


def test_rules_from_config_keeps_seed_rule(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text('[{"codes": ["A", "B"]}]', encoding="utf-8")

    assert rules_from_config(None) == DEFAULT_RULES
    assert len(rules_from_config(path)) == len(DEFAULT_RULES) + 1
