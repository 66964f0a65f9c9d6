from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Any, Callable, Iterable, List, Optional

logger = logging.getLogger("conflicts")

CodePredicate = Callable[[AbstractSet[str]], bool]


@dataclass(frozen=True)
class ConflictRule:
    """A billing-exclusivity rule over the set of accepted code literals."""

    predicate: CodePredicate
    reason: str

    def matches(self, codes: AbstractSet[str]) -> bool:
        return self.predicate(codes)


def mutually_exclusive(first: str, second: str, reason: Optional[str] = None) -> ConflictRule:
    """Build a rule that fires when both codes are accepted together."""

    return ConflictRule(
        predicate=lambda codes: first in codes and second in codes,
        reason=reason or f"Conflict: {first} and {second} generally not billable together.",
    )


# Placeholder policy, not a certified NCCI edit table.
DEFAULT_RULES: List[ConflictRule] = [
    mutually_exclusive("99214", "99396"),
]


def load_pairwise_rules(path: Path) -> List[ConflictRule]:
    """Load extra pairwise rules from a JSON array or JSONL file.

    Each record looks like ``{"codes": ["99214", "99396"], "reason": "..."}``;
    ``reason`` is optional.
    """

    if not path.exists():
        raise RuntimeError(f"Conflict rules file '{path}' does not exist.")

    with path.open("r", encoding="utf-8") as f:
        # Support either a JSON array or JSONL (one JSON object per line).
        first_char = f.read(1)
        f.seek(0)
        if first_char == "[":
            raw = json.load(f)
            records: Iterable[Any] = raw if isinstance(raw, list) else []
        else:
            records = [json.loads(line) for line in f if line.strip()]

    rules: List[ConflictRule] = []
    for record in records:
        rule = _rule_from_record(record)
        if rule is None:
            logger.warning("Skipping malformed conflict rule record: %r", record)
            continue
        rules.append(rule)
    return rules


def _rule_from_record(record: Any) -> Optional[ConflictRule]:
    if not isinstance(record, dict):
        return None
    codes = record.get("codes")
    if not isinstance(codes, list) or len(codes) != 2 or not all(isinstance(c, str) and c for c in codes):
        return None
    reason = record.get("reason")
    return mutually_exclusive(codes[0], codes[1], reason if isinstance(reason, str) and reason else None)


def rules_from_config(extra_rules_path: Optional[Path]) -> List[ConflictRule]:
    rules = list(DEFAULT_RULES)
    if extra_rules_path is not None:
        extra = load_pairwise_rules(extra_rules_path)
        logger.info("Loaded %d extra conflict rule(s) from %s", len(extra), extra_rules_path)
        rules.extend(extra)
    return rules
