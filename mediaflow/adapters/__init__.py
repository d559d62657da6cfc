"""Provider adapters and the tool -> adapter registry."""
from __future__ import annotations

import logging

from ..config import Config
from .base import JobAdapter, JobHandle, JobState, JobStatus, normalize_output
from .gemini import GeminiVeoAdapter
from .huggingface import HuggingFaceAdapter
from .placeholder import PlaceholderAdapter
from .replicate import ReplicateAdapter
from .sieve import SieveAdapter

log = logging.getLogger(__name__)

TOOLS = ("image", "video", "veo", "lipsync", "tts", "transcription", "enhance", "background_remove")
REPLICATE_TOOLS = ("image", "video", "tts", "enhance", "background_remove")

AdapterRegistry = dict[str, JobAdapter]


def build_registry(config: Config, use_placeholders: bool = False) -> AdapterRegistry:
    """Map every tool to the adapter that serves it.

    Tools whose provider has no credentials are left out; steps using them
    fail validation instead of reaching a provider.
    """
    if use_placeholders:
        return {tool: PlaceholderAdapter(tool, config.output_dir) for tool in TOOLS}

    registry: AdapterRegistry = {}
    if config.replicate_api_token:
        replicate = ReplicateAdapter(config.replicate_api_token)
        for tool in REPLICATE_TOOLS:
            registry[tool] = replicate
    if config.sieve_api_key:
        registry["lipsync"] = SieveAdapter(config.sieve_api_key)
    if config.gemini_api_key:
        registry["veo"] = GeminiVeoAdapter(config.gemini_api_key)
    if config.hf_token:
        registry["transcription"] = HuggingFaceAdapter(config.hf_token, "transcription", config.output_dir)
        # HF covers image and tts only when Replicate is not configured
        for tool in ("image", "tts"):
            registry.setdefault(tool, HuggingFaceAdapter(config.hf_token, tool, config.output_dir))

    missing = [t for t in TOOLS if t not in registry]
    if missing:
        log.warning("No provider configured for: %s", ", ".join(missing))
    return registry


__all__ = [
    "AdapterRegistry", "build_registry", "TOOLS",
    "JobAdapter", "JobHandle", "JobState", "JobStatus", "normalize_output",
    "GeminiVeoAdapter", "HuggingFaceAdapter", "PlaceholderAdapter",
    "ReplicateAdapter", "SieveAdapter",
]
