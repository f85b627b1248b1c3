"""Speech-to-Text API endpoints."""

import asyncio
import time
from pathlib import Path
from typing import AsyncIterator, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import FormParser, MultiPartException, MultiPartParser

from ..config.settings import Settings
from ..core.transcriber import Transcriber
from ..dependencies import get_settings, get_transcriber
from ..engine.base import AUTO_LANGUAGE
from ..exceptions import (
    BadFormError,
    FileTooLargeError,
    MissingFileError,
    UnsupportedExtensionError,
    UnsupportedLanguageError,
)
from ..utils.logging import get_logger
from .metrics import audio_duration, stt_processing_duration
from .models import TranscriptionResponse

router = APIRouter()
logger = get_logger(__name__)

FILE_FIELD = "file"
LANGUAGE_FIELD = "language"
ALLOWED_EXTENSIONS = frozenset({".wav"})

# Room for multipart boundaries, part headers and the language field
MULTIPART_OVERHEAD = 64 * 1024


def check_declared_size(request: Request, max_file_size: int) -> None:
    """Reject a body whose Content-Length cannot fit under the upload limit.

    Runs before the body is read, so oversized uploads never get buffered.
    """
    declared = request.headers.get("content-length")
    if declared is None:
        return
    try:
        size = int(declared)
    except ValueError:
        raise BadFormError("invalid Content-Length header")
    if size > max_file_size + MULTIPART_OVERHEAD:
        raise FileTooLargeError(size, max_file_size)


async def limited_stream(request: Request, max_file_size: int) -> AsyncIterator[bytes]:
    """Yield the request body, failing as soon as it outgrows the upload limit.

    Covers chunked bodies, which carry no Content-Length to check up front.
    """
    limit = max_file_size + MULTIPART_OVERHEAD
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise FileTooLargeError(received, max_file_size)
        yield chunk


async def read_form(request: Request, max_file_size: int) -> FormData:
    """Parse the form body without buffering more than the upload limit.

    Raises:
        BadFormError: Body is not a parseable form
        FileTooLargeError: Body grew past the upload limit while reading
    """
    content_type = request.headers.get("content-type", "").lower()
    stream = limited_stream(request, max_file_size)
    if content_type.startswith("multipart/form-data"):
        parser = MultiPartParser(request.headers, stream)
    elif content_type.startswith("application/x-www-form-urlencoded"):
        parser = FormParser(request.headers, stream)
    else:
        return FormData()

    try:
        return await parser.parse()
    except MultiPartException as e:
        raise BadFormError(e.message)


def is_valid_audio_file(filename: Optional[str]) -> bool:
    """Check the upload's filename extension against the whitelist."""
    if not filename:
        return False
    return Path(filename).suffix.lower() in ALLOWED_EXTENSIONS


def resolve_language(value, transcriber: Transcriber) -> str:
    """Default a blank language to auto-detection and check it is supported."""
    if not isinstance(value, str) or not value.strip():
        return AUTO_LANGUAGE

    language = value.strip()
    if language == AUTO_LANGUAGE:
        return language

    supported = transcriber.lifecycle.supported_languages()
    if supported and language not in supported:
        raise UnsupportedLanguageError(language)
    return language


def extract_upload(form: FormData, max_file_size: int) -> Tuple[UploadFile, str]:
    """Pull the audio file out of the form and validate it.

    Returns:
        Tuple of (upload, filename)

    Raises:
        MissingFileError: No file part in the form
        FileTooLargeError: File part exceeds the upload limit
        UnsupportedExtensionError: Filename is not a .wav file
    """
    upload = form.get(FILE_FIELD)
    if not isinstance(upload, UploadFile):
        raise MissingFileError()

    if upload.size is not None and upload.size > max_file_size:
        raise FileTooLargeError(upload.size, max_file_size)

    filename = upload.filename or ""
    if not is_valid_audio_file(filename):
        raise UnsupportedExtensionError(filename)

    return upload, filename


@router.post(
    "/transcribe",
    response_model=TranscriptionResponse,
    response_model_exclude_none=True,
    summary="Transcribe a WAV file",
    responses={
        400: {"model": TranscriptionResponse},
        413: {"model": TranscriptionResponse},
        500: {"model": TranscriptionResponse},
        503: {"model": TranscriptionResponse},
    },
)
async def transcribe(
    request: Request,
    settings: Settings = Depends(get_settings),
    transcriber: Transcriber = Depends(get_transcriber)
):
    """Transcribe an uploaded WAV file.

    Expects a multipart form with a ``file`` part and an optional
    ``language`` field (defaults to auto-detection).
    """
    max_file_size = settings.api.max_file_size
    check_declared_size(request, max_file_size)

    form = await read_form(request, max_file_size)
    try:
        upload, filename = extract_upload(form, max_file_size)
        audio_bytes = await upload.read()
        if len(audio_bytes) > max_file_size:
            raise FileTooLargeError(len(audio_bytes), max_file_size)

        language = resolve_language(form.get(LANGUAGE_FIELD), transcriber)
    finally:
        await form.close()

    logger.info(
        "Received audio upload",
        extra={
            "file_name": filename,
            "size_bytes": len(audio_bytes),
            "language": language,
        },
    )

    start_time = time.time()
    loop = asyncio.get_event_loop()
    result = await loop.run_in_executor(
        None, transcriber.process_audio, audio_bytes, language
    )

    stt_processing_duration.labels(model=result.model).observe(time.time() - start_time)
    audio_duration.observe(result.duration)

    return result.to_dict()
