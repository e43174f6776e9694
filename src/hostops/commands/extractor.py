"""Action extractor: turns free text into candidate structured actions."""

import logging
from collections.abc import Callable
from datetime import date

from hostops.commands import text_helpers as th
from hostops.commands.actions import CandidateAction
from hostops.commands.patterns import PATTERN_LIBRARY, PatternRule

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.7
CONFIDENCE_STEP = 0.1
# Fraction of the message a match must cover to count as a long match.
LONG_MATCH_RATIO = 0.5


class ActionExtractor:
    """Scan free text against the pattern library.

    A message may yield several candidates ("approve booking B1 and assign
    Maria to job J2"). Candidates are returned by descending confidence with at
    most one per action tag.
    """

    def __init__(
        self,
        rules: tuple[PatternRule, ...] = PATTERN_LIBRARY,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the extractor.

        Args:
            rules: Ordered pattern rules to apply.
            today: Source of the current date for relative date parsing.
        """
        self.rules = rules
        self.today = today

    def extract(self, text: str) -> list[CandidateAction]:
        """Extract candidate actions from text.

        Args:
            text: Free-text instruction or model reply.

        Returns:
            Candidates sorted by descending confidence, deduplicated by tag.
            An empty list means nothing actionable was found.
        """
        if not text or not text.strip():
            return []

        today = self.today()
        candidates = []
        for rule in self.rules:
            for pattern in rule.patterns:
                for match in pattern.finditer(text):
                    candidate = self._build_candidate(rule, match, text, today)
                    if candidate is not None:
                        candidates.append(candidate)

        # sorted() is stable, so equal confidences keep library order
        candidates = sorted(candidates, key=lambda c: -c.confidence)

        seen = set()
        unique = []
        for candidate in candidates:
            if candidate.tag in seen:
                continue
            seen.add(candidate.tag)
            unique.append(candidate)

        if unique:
            logger.debug(
                "Extracted %d candidate action(s): %s",
                len(unique),
                ", ".join(c.tag.value for c in unique),
            )
        return unique

    def _build_candidate(self, rule, match, text: str, today: date) -> CandidateAction | None:
        try:
            params = rule.build(match, text, today)
        except (ValueError, TypeError, IndexError) as e:
            logger.warning("Failed to extract %s parameters from %r: %s", rule.tag.value, match.group(0), e)
            return None
        if params is None:
            return None

        return CandidateAction(
            tag=rule.tag,
            parameters=params,
            confidence=self.score(match, text, today),
            safety_level=rule.safety_level,
            requires_confirmation=rule.requires_confirmation,
            original_text=match.group(0).strip(),
            source_collection=rule.collection,
            operation=rule.operation,
            description=rule.describe(params),
            target_document_id=rule.target_id(params),
        )

    def score(self, match, text: str, today: date | None = None) -> float:
        """Confidence for a match.

        Starts at 0.7 and adds 0.1 for each of: the match covers at least half
        the message, two or more capture groups were populated, a property name
        appears in the text, a parseable date appears in the text.
        """
        confidence = BASE_CONFIDENCE

        message_length = len(text.strip())
        if message_length and len(match.group(0).strip()) >= LONG_MATCH_RATIO * message_length:
            confidence += CONFIDENCE_STEP

        populated = [g for g in match.groups() if g and g.strip()]
        if len(populated) >= 2:
            confidence += CONFIDENCE_STEP

        if th.extract_property_name(text):
            confidence += CONFIDENCE_STEP

        if th.find_date(text, today=today):
            confidence += CONFIDENCE_STEP

        return round(min(confidence, 1.0), 2)


_default_extractor: ActionExtractor | None = None


def extract(text: str) -> list[CandidateAction]:
    """Extract candidate actions using the default pattern library."""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = ActionExtractor()
    return _default_extractor.extract(text)
