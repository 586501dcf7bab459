"""Unit tests for structured inference output parsing."""

from __future__ import annotations

import pytest

from carepilot.agents.schemas import Conflict
from carepilot.agents.schemas import DecisionDraft
from carepilot.agents.schemas import ObservationAnalysis
from carepilot.agents.schemas import SituationAnalysis
from carepilot.inference.errors import InvalidResponse
from carepilot.inference.parsing import parse_json
from carepilot.inference.parsing import parse_model
from carepilot.inference.parsing import parse_model_list
from carepilot.inference.parsing import parse_string_list
from carepilot.models.decisions import DecisionPriority
from carepilot.models.decisions import StrategyTimeline
from carepilot.models.recommendations import RiskLevel
from carepilot.models.symptoms import HealthDomain
from carepilot.models.symptoms import Severity


class TestParseJson:
    def test_plain_json(self):
        assert parse_json('{"a": 1}') == {"a": 1}

    def test_code_fence_stripped(self):
        assert parse_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_bare_code_fence_stripped(self):
        assert parse_json("```\n[1, 2]\n```") == [1, 2]

    def test_invalid_json_raises(self):
        with pytest.raises(InvalidResponse, match="Invalid JSON"):
            parse_json("this is not json at all {")


class TestParseModel:
    def test_camel_case_keys_accepted(self):
        raw = '{"urgency": "High", "primaryConcern": "chest pain", "riskLevel": "HIGH"}'
        situation = parse_model(raw, SituationAnalysis)
        assert situation.urgency == DecisionPriority.high
        assert situation.primary_concern == "chest pain"
        assert situation.risk_level == RiskLevel.high

    def test_empty_object_uses_situation_defaults(self):
        situation = parse_model("{}", SituationAnalysis)
        assert situation.urgency == DecisionPriority.medium
        assert situation.primary_concern == "General health concern"

    def test_missing_required_field_raises(self):
        with pytest.raises(InvalidResponse, match="DecisionDraft"):
            parse_model('{"priority": "high"}', DecisionDraft)

    def test_unknown_enum_value_raises(self):
        with pytest.raises(InvalidResponse):
            parse_model('{"primaryAction": "Rest", "priority": "critical"}', DecisionDraft)

    def test_domain_normalized(self):
        raw = '{"summary": "Low mood", "healthDomain": "Mental Health", "severity": "Moderate"}'
        analysis = parse_model(raw, ObservationAnalysis)
        assert analysis.health_domain == HealthDomain.mental_health
        assert analysis.severity == Severity.moderate

    def test_timeline_requires_all_horizons(self):
        with pytest.raises(InvalidResponse):
            parse_model('{"immediate": ["Rest"]}', StrategyTimeline)


class TestParseLists:
    def test_bare_array(self):
        raw = '[{"description": "Rest vs exercise"}]'
        conflicts = parse_model_list(raw, Conflict, key="conflicts")
        assert [c.description for c in conflicts] == ["Rest vs exercise"]

    def test_wrapped_array(self):
        raw = '{"conflicts": [{"description": "Rest vs exercise"}]}'
        assert len(parse_model_list(raw, Conflict, key="conflicts")) == 1

    def test_object_without_key_raises(self):
        with pytest.raises(InvalidResponse):
            parse_model_list("{}", Conflict, key="conflicts")

    def test_string_list(self):
        assert parse_string_list('["a", "b"]') == ["a", "b"]

    def test_string_list_wrapped(self):
        assert parse_string_list('{"questions": ["a"]}', key="questions") == ["a"]

    def test_string_list_rejects_objects(self):
        with pytest.raises(InvalidResponse):
            parse_string_list('[{"q": "a"}]')
