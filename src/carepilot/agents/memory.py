"""Health memory agent — compact trend/pattern context from the symptom log.

Pure and synchronous: no inference call, no I/O.  The history is scanned
lexically against a fixed symptom vocabulary, then split at the midpoint
of its time span so the newer half can be compared against the older
half.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Iterable
from collections.abc import Sequence
from datetime import datetime
from statistics import mean

from pydantic import ValidationError

from carepilot.models.symptoms import HealthSummary
from carepilot.models.symptoms import HealthTrends
from carepilot.models.symptoms import HistoricalContext
from carepilot.models.symptoms import MemoryContext
from carepilot.models.symptoms import Severity
from carepilot.models.symptoms import SEVERITY_RANK
from carepilot.models.symptoms import SymptomObservation
from carepilot.models.symptoms import SymptomPattern
from carepilot.models.symptoms import TrendDirection

logger = logging.getLogger(__name__)

SYMPTOM_VOCABULARY = (
    "headache",
    "fever",
    "cough",
    "fatigue",
    "nausea",
    "dizziness",
    "pain",
    "stress",
    "anxiety",
    "depression",
    "insomnia",
    "back pain",
    "chest pain",
    "shortness of breath",
    "abdominal pain",
    "diarrhea",
    "constipation",
    "rash",
    "swelling",
    "bleeding",
    "irregular period",
    "missed period",
    "joint pain",
    "muscle pain",
    "numbness",
    "tingling",
    "vision problems",
    "hearing problems",
    "weight loss",
    "weight gain",
    "loss of appetite",
)

LIFESTYLE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "sleep": ("slept badly", "poor sleep", "no sleep", "up all night", "tired"),
    "work stress": ("work", "deadline", "office", "meeting"),
    "diet": ("skipped breakfast", "skipped lunch", "junk food", "ate", "meal"),
    "caffeine": ("coffee", "caffeine", "energy drink"),
    "alcohol": ("alcohol", "beer", "wine", "drinking"),
    "exercise": ("exercise", "workout", "gym", "running"),
    "screen time": ("screen", "computer", "phone"),
    "hydration": ("dehydrated", "thirsty", "not enough water"),
}

_TRIGGER_RE = re.compile(r"\b(after|when|because of)\s+((?:[a-z']+\s?){1,4})")
_MAX_TRIGGERS = 5


def _term_regex(term: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(term)}\b")


_VOCAB_RE = {term: _term_regex(term) for term in SYMPTOM_VOCABULARY}
_LIFESTYLE_RE = {
    factor: [_term_regex(k) for k in keywords]
    for factor, keywords in LIFESTYLE_KEYWORDS.items()
}


def _text(observation: SymptomObservation) -> str:
    return f"{observation.summary} {observation.transcript}".lower()


def _direction(recent: float, older: float) -> TrendDirection:
    if recent > older:
        return TrendDirection.worsening
    if recent < older:
        return TrendDirection.improving
    return TrendDirection.stable


class HealthMemoryAgent:
    """Derives a ``MemoryContext`` from the full symptom history."""

    id = "health-memory"
    name = "Health Memory Agent"

    def analyze(self, history: Iterable[SymptomObservation] | None) -> MemoryContext:
        """Build the memory context; malformed input yields the empty context."""
        try:
            observations = self._coerce(history)
            observations.sort(key=lambda o: o.timestamp)
        except (TypeError, ValidationError) as exc:
            logger.warning("Malformed symptom history, using empty memory context: %s", exc)
            return MemoryContext.empty()

        if not observations:
            return MemoryContext.empty()

        first = observations[0].timestamp
        last = observations[-1].timestamp
        midpoint = first + (last - first) / 2
        span_days = (last - first).total_seconds() / 86400

        texts = [_text(o) for o in observations]
        patterns = self._patterns(observations, texts, midpoint, split=span_days > 0)
        trends = HealthTrends(
            overall=self._overall(observations, midpoint) if span_days > 0 else TrendDirection.stable,
            frequency=round(len(observations) / max(span_days / 7, 1.0), 2),
            severity=self._modal_severity(observations),
        )
        historical = self._historical_context(observations, texts, patterns, trends, span_days)
        summary = self._health_summary(observations, patterns)

        logger.debug(
            "Memory analysis: %d observations, %d patterns, overall=%s",
            len(observations),
            len(patterns),
            trends.overall.value,
        )
        return MemoryContext(
            patterns=patterns,
            trends=trends,
            historical_context=historical,
            health_summary=summary,
        )

    # -- steps --

    @staticmethod
    def _coerce(history: Iterable[SymptomObservation] | None) -> list[SymptomObservation]:
        if history is None:
            return []
        if isinstance(history, (str, bytes, dict)):
            raise TypeError(f"expected a sequence of observations, got {type(history).__name__}")
        return [
            item if isinstance(item, SymptomObservation) else SymptomObservation.model_validate(item)
            for item in history
        ]

    @staticmethod
    def _patterns(
        observations: Sequence[SymptomObservation],
        texts: Sequence[str],
        midpoint: datetime,
        *,
        split: bool,
    ) -> list[SymptomPattern]:
        patterns: list[SymptomPattern] = []
        for term, regex in _VOCAB_RE.items():
            hits = [o for o, text in zip(observations, texts) if regex.search(text)]
            if not hits:
                continue
            trend = TrendDirection.stable
            if split:
                recent = sum(1 for o in hits if o.timestamp >= midpoint)
                trend = _direction(recent, len(hits) - recent)
            patterns.append(
                SymptomPattern(
                    symptom=term,
                    frequency=len(hits),
                    first_occurrence=hits[0].timestamp,
                    last_occurrence=hits[-1].timestamp,
                    trend=trend,
                )
            )
        patterns.sort(key=lambda p: (-p.frequency, p.symptom))
        return patterns

    @staticmethod
    def _overall(observations: Sequence[SymptomObservation], midpoint: datetime) -> TrendDirection:
        recent = [o for o in observations if o.timestamp >= midpoint]
        older = [o for o in observations if o.timestamp < midpoint]
        if not older:
            return TrendDirection.stable
        recent_severity = mean(SEVERITY_RANK[o.severity] for o in recent)
        older_severity = mean(SEVERITY_RANK[o.severity] for o in older)
        # Both halves cover the same duration, so counts compare frequency
        if recent_severity > older_severity or len(recent) > len(older):
            return TrendDirection.worsening
        if recent_severity < older_severity or len(recent) < len(older):
            return TrendDirection.improving
        return TrendDirection.stable

    @staticmethod
    def _modal_severity(observations: Sequence[SymptomObservation]) -> Severity:
        counts = Counter(o.severity for o in observations)
        return max(counts, key=lambda s: (counts[s], SEVERITY_RANK[s]))

    @staticmethod
    def _historical_context(
        observations: Sequence[SymptomObservation],
        texts: Sequence[str],
        patterns: Sequence[SymptomPattern],
        trends: HealthTrends,
        span_days: float,
    ) -> HistoricalContext:
        recurring = [p.symptom for p in patterns if p.frequency >= 2]

        lifestyle = [
            factor
            for factor, regexes in _LIFESTYLE_RE.items()
            if any(r.search(text) for text in texts for r in regexes)
        ]

        triggers: list[str] = []
        for text in texts:
            for match in _TRIGGER_RE.finditer(text):
                phrase = f"{match.group(1)} {match.group(2).strip()}"
                if phrase not in triggers:
                    triggers.append(phrase)
        triggers = triggers[:_MAX_TRIGGERS]

        narrative = (
            f"{len(observations)} observation(s) over {span_days:.0f} day(s); "
            f"overall trend {trends.overall.value}; typical severity {trends.severity.value}."
        )
        if recurring:
            narrative += f" Recurring: {', '.join(recurring)}."
        if lifestyle:
            narrative += f" Lifestyle factors: {', '.join(lifestyle)}."
        if triggers:
            narrative += f" Possible triggers: {'; '.join(triggers)}."

        return HistoricalContext(
            recurring_issues=recurring,
            lifestyle_factors=lifestyle,
            trigger_patterns=triggers,
            narrative=narrative,
        )

    @staticmethod
    def _health_summary(
        observations: Sequence[SymptomObservation],
        patterns: Sequence[SymptomPattern],
    ) -> HealthSummary:
        concerns: list[str] = []
        latest = observations[-1].summary.strip()
        if latest:
            concerns.append(latest)
        concerns.extend(p.symptom for p in patterns if p.trend == TrendDirection.worsening)
        return HealthSummary(
            primary_concerns=concerns,
            improvement_areas=[p.symptom for p in patterns if p.trend == TrendDirection.improving],
            stable_areas=[p.symptom for p in patterns if p.trend == TrendDirection.stable],
        )
