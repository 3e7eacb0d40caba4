"""Inference backends: text → embedding vector, prompt → completion."""

from mnemo.backend.base import InferenceBackend
from mnemo.backend.openai_compat import OpenAICompatibleBackend

__all__ = ["InferenceBackend", "OpenAICompatibleBackend"]
