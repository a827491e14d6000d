"""Voice command endpoints.

For a stage-by-stage map see `fieldvoice.pipelines.voice.flow`. The POST
`/voice/command` endpoint performs:

1. Content-type resolution and size check of the upload (HTTP errors here).
2. One pipeline run: decode, transcribe, extract, parse.
3. Rendering of the run's result. Pipeline failures are regular 200
   responses with ``success: false``; only malformed requests get 4xx.
"""

import logging
import threading
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from fieldvoice.pipelines.voice import (
    AudioClip,
    VoiceCommandPipeline,
    describe_stages,
    read_audio_bytes,
    resolve_content_type,
)
from fieldvoice.views import ErrorResponse, PipelineStageView, VoiceCommandResponse

router = APIRouter(prefix="/voice", tags=["voice"])

logger = logging.getLogger(__name__)

_AUDIO_FILE_UPLOAD = File(None)

_pipeline: Optional[VoiceCommandPipeline] = None
_pipeline_lock = threading.Lock()


def get_voice_pipeline() -> VoiceCommandPipeline:
    """Return the shared pipeline; each `run` call is an independent state machine."""

    global _pipeline
    if _pipeline is None:
        with _pipeline_lock:
            if _pipeline is None:
                _pipeline = VoiceCommandPipeline()
    return _pipeline


VoicePipelineDep = Annotated[VoiceCommandPipeline, Depends(get_voice_pipeline)]


@router.post(
    "/command",
    response_model=VoiceCommandResponse,
    response_model_exclude_none=True,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        status.HTTP_415_UNSUPPORTED_MEDIA_TYPE: {"model": ErrorResponse},
    },
)
async def process_voice_command(
    pipeline: VoicePipelineDep,
    audio: Optional[UploadFile] = _AUDIO_FILE_UPLOAD,
) -> dict[str, Any]:
    """Turn a recorded voice command into a structured intent."""

    if audio is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No audio file provided",
        )

    content_type = resolve_content_type(audio)
    audio_bytes = await read_audio_bytes(audio)

    result = await pipeline.run(AudioClip(data=audio_bytes, content_type=content_type))
    if not result.success:
        logger.info(
            "Voice command run=%s ended with %s",
            result.run_id,
            result.error_kind.value if result.error_kind else "unknown",
        )
    return result.to_payload()


@router.get("/stages", response_model=list[PipelineStageView])
async def list_pipeline_stages() -> list[dict[str, Any]]:
    """Describe the ordered pipeline stages for debugging."""

    return [
        {
            "order": stage.order,
            "state": stage.state.value,
            "module": stage.module,
            "summary": stage.summary,
        }
        for stage in describe_stages()
    ]
