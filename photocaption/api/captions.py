"""
Purpose:
- /generate : upload -> tags + captions via the session orchestrator.
- /describe : upload -> detailed free-form description.
- /cache    : inspect the durable "last known good" entry, clear the volatile tier.

Notes:
- Always returns JSON ({"ok": false, ...} on failure); typed errors carry their
  kind so the UI can tell "wait a minute" from "the service broke".
"""

import base64
import logging
import uuid
from io import BytesIO

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from ..captions.errors import CaptionError, ErrorKind
from ..captions.orchestrator import CaptionOrchestrator
from ..captions.schema import GenerationOptions, ImagePayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/captions", tags=["captions"])

STATUS_BY_KIND = {
    ErrorKind.RATE_LIMIT_EXCEEDED.value: 429,
    ErrorKind.RETRIES_EXHAUSTED.value: 429,
    ErrorKind.REMOTE_THROTTLED.value: 429,
    ErrorKind.ALREADY_IN_PROGRESS.value: 409,
    ErrorKind.NO_TAGS_DETECTED.value: 422,
    ErrorKind.MALFORMED_RESPONSE.value: 502,
    ErrorKind.NETWORK_OR_SERVICE.value: 502,
}

def get_orchestrator(request: Request) -> CaptionOrchestrator:
    return request.app.state.orchestrator

class InvalidImage(ValueError):
    pass

async def _read_payload(image: UploadFile, image_id: str | None = None) -> ImagePayload:
    """
    Check the upload decodes as an image (no processing), then base64 it.
    Without a caller id a fresh one is minted per upload; the response returns
    it so the caller can reuse it for cache hits.
    """
    raw = await image.read()
    try:
        with Image.open(BytesIO(raw)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidImage(f"not an image: {e!r}") from e

    if not image_id:
        image_id = uuid.uuid4().hex
    return ImagePayload(data=base64.b64encode(raw).decode("ascii"), image_id=image_id)

def _split_tags(tags: str | None) -> tuple[str, ...]:
    return tuple(t.strip() for t in (tags or "").split(",") if t.strip())

def _error(status: int, kind: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status, content={"ok": False, "error_kind": kind, "error": message, **extra})

@router.post("/generate")
async def generate(
    image: UploadFile = File(...),
    image_id: str | None = Form(default=None),
    mode: str = Form(default="auto"),
    location: str | None = Form(default=None),
    tone: str = Form(default="original"),
    additional_info: str | None = Form(default=None),
    tags: str | None = Form(default=None, description="comma-separated labels for custom mode"),
    orchestrator: CaptionOrchestrator = Depends(get_orchestrator),
):
    try:
        payload = await _read_payload(image, image_id)
    except InvalidImage as e:
        return _error(400, "invalid_image", str(e), filename=image.filename)

    try:
        options = GenerationOptions(
            mode=mode,
            location=location or None,
            tone=tone,
            additional_info=additional_info or None,
            tags=_split_tags(tags),
        )
    except ValidationError as e:
        return _error(422, "invalid_options", str(e), filename=image.filename)

    try:
        outcome = await orchestrator.generate_outcome(payload, options, payload.image_id)
    except Exception as e:
        logger.exception("generate failed for %s", image.filename)
        return _error(500, "internal", f"caption-failed: {e!r}", filename=image.filename)

    body = {**outcome.model_dump(mode="json", by_alias=True), "image_id": payload.image_id,
            "filename": image.filename}
    if outcome.ok:
        return body
    return JSONResponse(status_code=STATUS_BY_KIND.get(outcome.error_kind, 500), content=body)

@router.post("/describe")
async def describe(
    image: UploadFile = File(...),
    orchestrator: CaptionOrchestrator = Depends(get_orchestrator),
):
    try:
        payload = await _read_payload(image)
        text = await orchestrator.describe(payload)
        return {"ok": True, "description": text, "filename": image.filename}
    except InvalidImage as e:
        return _error(400, "invalid_image", str(e), filename=image.filename)
    except CaptionError as e:
        return _error(STATUS_BY_KIND.get(e.kind.value, 500), e.kind.value, e.message, filename=image.filename)

@router.get("/cache/{image_id}")
def cached(image_id: str, orchestrator: CaptionOrchestrator = Depends(get_orchestrator)):
    """
    Last known good analysis for an image (durable tier, any options).
    """
    entry = orchestrator.cached_analysis(image_id)
    if entry is None:
        return JSONResponse(status_code=404, content={"ok": False, "image_id": image_id})
    return {"ok": True, "image_id": image_id, "entry": entry.model_dump(mode="json", by_alias=True)}

@router.delete("/cache")
def clear_cache(orchestrator: CaptionOrchestrator = Depends(get_orchestrator)):
    """Drop the in-memory tier; the durable tier is left alone."""
    orchestrator.clear_cache()
    return {"ok": True}
