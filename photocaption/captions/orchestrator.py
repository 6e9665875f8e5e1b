"""
Purpose:
- CaptionOrchestrator sequences one captioning request:
    cache check -> client throttle -> analyze (remote) -> generate (remote)
    -> shape result -> write both cache tiers
- Holds all per-session state (limiter counters, volatile cache, in-flight flag).
  Build one per application with build_orchestrator() and close() it on shutdown.

Notes:
- Only one request may be in flight per orchestrator; a second one is rejected
  with AlreadyInProgress instead of being queued.
- The two remote calls go through RetryPolicy; the client throttle does not.
"""

from __future__ import annotations
import logging
from enum import Enum
from typing import Optional

from ..core.settings import Settings
from .cache import JsonFileStore, KeyValueStore, ResponseCache
from .errors import AlreadyInProgress, CaptionError, NoTagsDetected
from .parsing import parse_caption_result, parse_tags
from .prompts import build_caption_prompt
from .rate_limiter import RateLimiter
from .remote import CaptionService, OpenAICaptionService, OpenAIConfig
from .retry import RetryPolicy
from .schema import CacheEntry, GenerationOptions, GenerationOutcome, GenerationResult, ImagePayload

logger = logging.getLogger(__name__)

class State(str, Enum):
    IDLE = "idle"
    CACHE_CHECK = "cache_check"
    RATE_LIMIT = "rate_limit"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"

def _image_data(image: ImagePayload | str) -> str:
    return image.data if isinstance(image, ImagePayload) else image

class CaptionOrchestrator:
    def __init__(
        self,
        service: CaptionService,
        cache: Optional[ResponseCache] = None,
        limiter: Optional[RateLimiter] = None,
        retry: Optional[RetryPolicy] = None,
    ):
        self.service = service
        self.cache = cache or ResponseCache()
        self.limiter = limiter or RateLimiter()
        self.retry = retry or RetryPolicy()
        self.state = State.IDLE
        self.last_error: Optional[str] = None
        # whether the most recent generate() was answered from the volatile tier
        self.last_from_cache = False
        self._in_flight = False

    @property
    def is_generating(self) -> bool:
        return self._in_flight

    def _acquire(self) -> None:
        if self._in_flight:
            raise AlreadyInProgress()
        self._in_flight = True
        self.last_error = None
        self.last_from_cache = False

    async def generate(
        self,
        image: ImagePayload | str,
        options: Optional[GenerationOptions] = None,
        image_id: Optional[str] = None,
    ) -> GenerationResult:
        """
        Run one captioning request and return tags + captions.
        Raises a CaptionError subclass on failure; nothing is cached then.
        """
        options = options or GenerationOptions()
        if image_id is None and isinstance(image, ImagePayload):
            image_id = image.image_id

        self._acquire()
        try:
            self.state = State.CACHE_CHECK
            if image_id:
                hit = self.cache.get_by_fingerprint(image_id, options)
                if hit is not None and hit.captions is not None:
                    logger.info("Using cached response for image: %s", image_id)
                    self.last_from_cache = True
                    self.state = State.DONE
                    return GenerationResult(tags=hit.tags, captions=hit.captions)

            self.state = State.RATE_LIMIT
            self.limiter.check_and_record()

            self.state = State.ANALYZING
            data = _image_data(image)
            analysis = await self.retry.execute(lambda: self.service.analyze(data))
            tags = parse_tags(analysis)
            if not tags:
                raise NoTagsDetected()
            logger.debug("analysis for %s -> %d tags", image_id, len(tags))

            self.state = State.GENERATING
            prompt = build_caption_prompt([t.label for t in tags], options)
            content = await self.retry.execute(lambda: self.service.generate_captions(prompt))
            captions = parse_caption_result(content)

            result = GenerationResult(tags=tags, captions=captions)
            if image_id:
                self.cache.put(image_id, options, result.to_cache_entry())
            self.state = State.DONE
            return result
        except CaptionError as e:
            self.state = State.FAILED
            self.last_error = e.message
            logger.warning("caption generation failed for %s: [%s] %s", image_id, e.kind.value, e.message)
            raise
        except Exception:
            self.state = State.FAILED
            logger.exception("unexpected error while captioning %s", image_id)
            raise
        finally:
            self._in_flight = False

    async def generate_outcome(
        self,
        image: ImagePayload | str,
        options: Optional[GenerationOptions] = None,
        image_id: Optional[str] = None,
    ) -> GenerationOutcome:
        """
        Same as generate(), but typed failures come back as a value:
        GenerationOutcome(ok=False, error_kind=..., message=...).
        """
        try:
            result = await self.generate(image, options, image_id)
        except CaptionError as e:
            return GenerationOutcome(ok=False, error_kind=e.kind.value, message=e.message)
        return GenerationOutcome(ok=True, result=result, cached=self.last_from_cache)

    async def describe(self, image: ImagePayload | str) -> str:
        """
        Detailed free-form description of an image. Throttled like generate(),
        never cached.
        """
        self._acquire()
        try:
            self.state = State.RATE_LIMIT
            self.limiter.check_and_record()
            self.state = State.ANALYZING
            data = _image_data(image)
            text = await self.retry.execute(lambda: self.service.describe(data))
            self.state = State.DONE
            return text
        except CaptionError as e:
            self.state = State.FAILED
            self.last_error = e.message
            raise
        except Exception:
            self.state = State.FAILED
            logger.exception("unexpected error while describing image")
            raise
        finally:
            self._in_flight = False

    def cached_analysis(self, image_id: str) -> Optional[CacheEntry]:
        """Last known good analysis for an image, whatever options produced it."""
        return self.cache.get_by_image(image_id)

    def clear_cache(self) -> None:
        self.cache.clear_volatile()

    async def close(self) -> None:
        close = getattr(self.service, "close", None)
        if close is not None:
            await close()

def build_orchestrator(cfg: Settings, store: Optional[KeyValueStore] = None) -> CaptionOrchestrator:
    """
    Wire an orchestrator from settings. One per app instance (see main.lifespan).
    """
    service = OpenAICaptionService(OpenAIConfig(
        api_key=cfg.openai_api_key,
        base_url=cfg.openai_base_url,
        timeout=cfg.request_timeout,
        analysis_model=cfg.analysis_model,
        analysis_max_tokens=cfg.analysis_max_tokens,
        caption_model=cfg.caption_model,
        caption_max_tokens=cfg.caption_max_tokens,
        caption_temperature=cfg.caption_temperature,
        describe_model=cfg.describe_model,
        describe_max_tokens=cfg.describe_max_tokens,
    ))
    return CaptionOrchestrator(
        service=service,
        cache=ResponseCache(store if store is not None else JsonFileStore(cfg.cache_path)),
        limiter=RateLimiter(
            min_interval=cfg.rate_min_interval_s,
            max_requests=cfg.rate_max_requests,
            window=cfg.rate_window_s,
        ),
        retry=RetryPolicy(
            max_attempts=cfg.retry_max_attempts,
            base_delay_ms=cfg.retry_base_delay_ms,
            max_delay_ms=cfg.retry_max_delay_ms,
        ),
    )
