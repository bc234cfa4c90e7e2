"""Decoding and validation of generation request payloads."""

import json
from typing import Any

from pydantic import ValidationError

from episode_talk.models.generation import GenerationRequest
from episode_talk.utils.errors import InvalidInputError

INVALID_INPUT_MESSAGE = "Invalid input"


def _empty_breakdown() -> dict[str, Any]:
    return {"formErrors": [], "fieldErrors": {}}


def _form_error(message: str) -> InvalidInputError:
    detail = _empty_breakdown()
    detail["formErrors"].append(message)
    return InvalidInputError(INVALID_INPUT_MESSAGE, detail=detail)


def decode_payload(raw: bytes | str | None) -> Any:
    """Decode a transport body into Python data.

    An absent or blank body decodes to an empty record. A body that decodes
    to a JSON string (a double-encoded payload) is decoded once more.

    Args:
        raw: The request body as received.

    Returns:
        The decoded value.

    Raises:
        InvalidInputError: If the body is not valid JSON.
    """
    if raw is None:
        return {}

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise _form_error("Request body is not valid UTF-8")

    if not raw.strip():
        return {}

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise _form_error(f"Request body is not valid JSON: {e.msg}")
    except (ValueError, RecursionError):
        raise _form_error("Request body is not valid JSON")

    if isinstance(payload, str):
        if not payload.strip():
            return {}
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise _form_error(f"Encoded request body is not valid JSON: {e.msg}")
        except (ValueError, RecursionError):
            raise _form_error("Encoded request body is not valid JSON")

    return payload


def flatten_validation_error(exc: ValidationError) -> dict[str, Any]:
    """Group pydantic errors by top-level field.

    Returns:
        ``{"formErrors": [...], "fieldErrors": {field: [messages]}}``.
    """
    detail = _empty_breakdown()
    for error in exc.errors():
        loc = error.get("loc") or ()
        message = error.get("msg", "Invalid value")
        if loc:
            field = str(loc[0])
            detail["fieldErrors"].setdefault(field, []).append(message)
        else:
            detail["formErrors"].append(message)
    return detail


def parse_generation_request(payload: Any) -> GenerationRequest:
    """Validate decoded data and fill in defaults.

    Args:
        payload: Decoded request body.

    Returns:
        The normalized request.

    Raises:
        InvalidInputError: With a field-level breakdown if any field is invalid.
    """
    if payload is None:
        payload = {}

    if not isinstance(payload, dict):
        raise _form_error(f"Expected a JSON object, got {type(payload).__name__}")

    try:
        return GenerationRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidInputError(INVALID_INPUT_MESSAGE, detail=flatten_validation_error(e))


def validate_body(raw: bytes | str | None) -> GenerationRequest:
    """Decode and validate a raw request body in one step."""
    return parse_generation_request(decode_payload(raw))
