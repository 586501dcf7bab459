"""Inference domain — gateway, error taxonomy and structured parsing."""

from carepilot.inference.errors import InferenceError
from carepilot.inference.errors import InvalidResponse
from carepilot.inference.errors import MaxRetriesExceeded
from carepilot.inference.errors import RateLimited
from carepilot.inference.errors import RequestFailed
from carepilot.inference.errors import TransientNetworkError
from carepilot.inference.gateway import AudioHandle
from carepilot.inference.gateway import build_gateway
from carepilot.inference.gateway import InferenceGateway
from carepilot.inference.gateway import InferenceRequest
from carepilot.inference.gateway import NoopGateway
from carepilot.inference.gateway import OpenAICompatibleGateway
from carepilot.inference.gateway import parse_retry_hint
from carepilot.inference.parsing import parse_json
from carepilot.inference.parsing import parse_model
from carepilot.inference.parsing import parse_model_list
from carepilot.inference.parsing import parse_string_list

__all__ = [
    "AudioHandle",
    "InferenceError",
    "InferenceGateway",
    "InferenceRequest",
    "InvalidResponse",
    "MaxRetriesExceeded",
    "NoopGateway",
    "OpenAICompatibleGateway",
    "RateLimited",
    "RequestFailed",
    "TransientNetworkError",
    "build_gateway",
    "parse_json",
    "parse_model",
    "parse_model_list",
    "parse_retry_hint",
    "parse_string_list",
]
