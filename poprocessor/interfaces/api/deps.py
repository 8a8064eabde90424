"""
API Dependencies - Dependency injection for FastAPI routes.

Provides singleton instances of the governor, the generation client and the
pure pipeline stages. The governor must be a process-wide singleton: every
generation call shares its rate state.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from poprocessor.adapters.gemini import GeminiClient, GeminiConfig
from poprocessor.config import get_settings
from poprocessor.domains.governor import CallGovernor, GovernorConfig
from poprocessor.domains.normalization import FieldNormalizer, NormalizerConfig
from poprocessor.domains.orchestration import DomainMapper, GenerationClient, MapperConfig
from poprocessor.domains.repair import JsonRepairEngine


@lru_cache
def get_governor() -> CallGovernor:
    """Get call governor singleton."""
    return CallGovernor(GovernorConfig.from_settings(get_settings()))


@lru_cache
def get_generation_client() -> GenerationClient:
    """Get Gemini client singleton."""
    return GeminiClient(GeminiConfig.from_settings(get_settings()))


@lru_cache
def get_repair_engine() -> JsonRepairEngine:
    """Get JSON repair engine singleton."""
    return JsonRepairEngine(get_settings().repair_max_extra_passes)


@lru_cache
def get_normalizer() -> FieldNormalizer:
    """Get field normalizer singleton."""
    return FieldNormalizer(NormalizerConfig.from_settings(get_settings()))


def get_mapper(
    client: GenerationClient = Depends(get_generation_client),
    governor: CallGovernor = Depends(get_governor),
    repair_engine: JsonRepairEngine = Depends(get_repair_engine),
    normalizer: FieldNormalizer = Depends(get_normalizer),
) -> DomainMapper:
    """Compose a mapper over the shared singletons."""
    return DomainMapper(
        client,
        governor=governor,
        repair_engine=repair_engine,
        normalizer=normalizer,
        config=MapperConfig.from_settings(get_settings()),
    )
