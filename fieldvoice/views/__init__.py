"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse
from .voice import PipelineStageView, VoiceCommandResponse

__all__ = [
    "ErrorResponse",
    "PipelineStageView",
    "VoiceCommandResponse",
]
