from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from src.quickcode.config import settings
from src.quickcode.domain.models.code_suggestion import CodeSuggestion
from src.quickcode.domain.models.conflict import NO_ACCEPTED_CODES_MESSAGE, ConflictOutcome
from src.quickcode.services.conflicts.rules import ConflictRule, rules_from_config

logger = logging.getLogger("conflicts")


class ConflictChecker:
    """Evaluate accepted codes against a table of billing-exclusivity rules.

    The rule table is a plain list of ``ConflictRule(predicate, reason)``
    entries, so real edit tables can be swapped in without changing
    :meth:`check`. An optional delay models a remote rules engine.
    """

    def __init__(
        self,
        *,
        rules: Optional[List[ConflictRule]] = None,
        delay_seconds: Optional[float] = None,
    ) -> None:
        self._rules = list(rules) if rules is not None else rules_from_config(settings.conflict_rules_path)
        self._delay_seconds = (
            delay_seconds if delay_seconds is not None else settings.conflict_check_delay_ms / 1000.0
        )

    @property
    def rules(self) -> List[ConflictRule]:
        return list(self._rules)

    async def check(self, accepted_codes: Iterable[CodeSuggestion]) -> ConflictOutcome:
        present = frozenset(item.code for item in accepted_codes)
        if not present:
            return ConflictOutcome.info(NO_ACCEPTED_CODES_MESSAGE)

        if self._delay_seconds > 0:
            await asyncio.sleep(self._delay_seconds)

        reasons = [rule.reason for rule in self._rules if rule.matches(present)]
        if reasons:
            logger.info("Conflict check found %d conflict(s) across %d code(s)", len(reasons), len(present))
            return ConflictOutcome.conflict(reasons)

        logger.info("Conflict check clean for %d code(s)", len(present))
        return ConflictOutcome.clean()


conflict_checker = ConflictChecker()
