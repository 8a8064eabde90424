"""
Orchestration Domain - Document pipeline coordination.

This domain handles:
- Prompts for each document kind
- The generation client contract
- Composing extraction, governed generation, repair and normalization
"""

from .contracts import GeneratedText, GenerationClient
from .mapper import DomainMapper
from .models import JSON_MIME_TYPE, DocumentKind, MapperConfig
from .prompts import SYSTEM_INSTRUCTION, build_extraction_prompt, build_reinterpret_prompt

__all__ = [
    # Contracts
    "GenerationClient",
    "GeneratedText",
    # Models
    "DocumentKind",
    "MapperConfig",
    "JSON_MIME_TYPE",
    # Implementations
    "DomainMapper",
    "SYSTEM_INSTRUCTION",
    "build_extraction_prompt",
    "build_reinterpret_prompt",
]
