"""Episode generation endpoint handler."""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from episode_talk.api.deps import RandomDep, RequestIdDep, SettingsDep
from episode_talk.core.generator import compute_max_tokens, create_generator
from episode_talk.core.normalizer import normalize_free_text, normalize_structured
from episode_talk.core.prompts import build_prompts, draw_style_toggle
from episode_talk.core.validation import validate_body
from episode_talk.models.generation import LENGTH_MAX
from episode_talk.utils.errors import (
    ConfigurationError,
    ErrorCode,
    GenerationError,
    create_error_response,
    get_user_message,
    log_error,
)

logger = logging.getLogger(__name__)

router = APIRouter()

GENERATE_PATH = "/api/generate"
ALLOWED_METHODS = ("GET", "POST", "OPTIONS")


@router.options(GENERATE_PATH, status_code=204)
async def generate_preflight() -> Response:
    """Answer cross-origin preflight with an empty body."""
    return Response(status_code=204)


@router.get(GENERATE_PATH)
async def generate_status() -> dict:
    """Acknowledge that the route is up. No side effects."""
    return {"ok": True, "route": GENERATE_PATH}


@router.api_route(GENERATE_PATH, methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
async def generate_method_not_allowed() -> JSONResponse:
    """Reject other methods, advertising the allowed ones."""
    return JSONResponse(
        status_code=405,
        content={"error": get_user_message(ErrorCode.METHOD_NOT_ALLOWED)},
        headers={"Allow": ", ".join(ALLOWED_METHODS)},
    )


@router.post(GENERATE_PATH)
async def generate_episode(
    request: Request,
    settings: SettingsDep,
    rng: RandomDep,
    request_id: RequestIdDep,
) -> JSONResponse:
    """Generate an episode talk from a short brief.

    Validates the body, builds the prompts, calls the model once under the
    configured deadline and normalizes its output. Degraded output is
    returned with a ``note`` rather than as an error.

    Args:
        request: The FastAPI request, read as raw bytes.
        settings: Application settings dependency.
        rng: Random source for the style toggle.
        request_id: Request ID assigned by middleware.

    Returns:
        JSONResponse with the result (200) or ``{"error": ...}``
        (400, 500 or 504).
    """
    generation = settings.generation

    try:
        brief = validate_body(await request.body())

        try:
            settings.validate_required()
        except ValueError as e:
            raise ConfigurationError(str(e))

        three_step = draw_style_toggle(rng, generation.style_toggle_probability)
        prompts = build_prompts(
            brief,
            three_step,
            length_cap=LENGTH_MAX,
            output_mode=generation.output_mode,
        )
        max_tokens = compute_max_tokens(brief.length, generation.max_output_tokens)

        logger.info(
            "Generating episode",
            extra={
                "length": brief.length,
                "three_step": three_step,
                "output_mode": generation.output_mode,
                "max_tokens": max_tokens,
            },
        )

        generator = create_generator(settings)
        raw = await generator.generate(
            prompts,
            max_tokens,
            json_output=generation.output_mode == "structured",
        )

    except GenerationError as e:
        log_error(e, code=e.code, request_id=request_id)
        return create_error_response(e)

    if generation.output_mode == "structured":
        result = normalize_structured(raw, brief.length, LENGTH_MAX)
    else:
        result = normalize_free_text(raw, brief.length, LENGTH_MAX)

    if result.note:
        logger.info("Returning degraded episode", extra={"degraded": True})

    return JSONResponse(content=result.model_dump(exclude_none=True))
