"""Symptom analyzer — one transcript into one classified observation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from carepilot.agents import prompts
from carepilot.agents.schemas import ObservationAnalysis
from carepilot.inference.errors import InferenceError
from carepilot.inference.gateway import AudioHandle
from carepilot.inference.gateway import InferenceGateway
from carepilot.inference.parsing import parse_model
from carepilot.models.symptoms import HealthDomain
from carepilot.models.symptoms import Impact
from carepilot.models.symptoms import Severity
from carepilot.models.symptoms import SymptomObservation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioRecording:
    """A recording still to be transcribed (file path or raw bytes)."""

    handle: AudioHandle


TranscriptSource = str | AudioRecording


def fallback_analysis(transcript: str) -> ObservationAnalysis:
    return ObservationAnalysis(
        summary=transcript.strip() or "No details provided",
        health_domain=HealthDomain.general_wellness,
        severity=Severity.mild,
        impact=Impact.low,
    )


class SymptomAnalyzer:
    """Classifies a recording's transcript into a ``SymptomObservation``."""

    id = "symptom-analyzer"
    name = "Symptom Analyzer"

    def __init__(self, gateway: InferenceGateway) -> None:
        self._gateway = gateway

    async def transcribe(self, source: TranscriptSource) -> str:
        """Return *source* as text, transcribing audio first.

        Transcription failures propagate: without a transcript there is
        nothing for the pipeline to work on.
        """
        if isinstance(source, AudioRecording):
            transcript = await self._gateway.transcribe(source.handle)
            logger.info("Transcribed recording (%d chars)", len(transcript))
            return transcript
        return source

    async def analyze_transcript(self, transcript: str) -> ObservationAnalysis:
        try:
            raw = await self._gateway.complete(prompts.observation_analysis(transcript))
            return parse_model(raw, ObservationAnalysis)
        except InferenceError as exc:
            logger.warning("Transcript analysis failed, using fallback: %s", exc)
        except Exception:
            logger.exception("Unexpected error analyzing transcript")
        return fallback_analysis(transcript)

    async def observe(
        self,
        source: TranscriptSource,
        *,
        timestamp: datetime | None = None,
    ) -> SymptomObservation:
        """Transcribe if needed, classify, and build a new observation."""
        transcript = await self.transcribe(source)
        analysis = await self.analyze_transcript(transcript)
        fields = {
            "transcript": transcript,
            "summary": analysis.summary,
            "health_domain": analysis.health_domain,
            "severity": analysis.severity,
            "impact": analysis.impact,
        }
        if timestamp is not None:
            fields["timestamp"] = timestamp
        return SymptomObservation(**fields)
