"""Stores domain — symptom log and recommendation collaborators."""

from carepilot.stores.base import RecommendationStore
from carepilot.stores.base import SymptomLogStore
from carepilot.stores.memory import InMemoryRecommendationStore
from carepilot.stores.memory import InMemorySymptomLogStore
from carepilot.stores.redis_store import RedisRecommendationStore
from carepilot.stores.redis_store import RedisSymptomLogStore

__all__ = [
    "InMemoryRecommendationStore",
    "InMemorySymptomLogStore",
    "RecommendationStore",
    "RedisRecommendationStore",
    "RedisSymptomLogStore",
    "SymptomLogStore",
]
