"""Normalization of raw model output into response models.

Nothing in this module raises on malformed model output: degraded results are
returned with a ``note`` instead.
"""

import json
import logging
import re
from typing import Any

from episode_talk.core.prompts import target_length_window
from episode_talk.core.techniques import (
    REVERSAL,
    ensure_reversal,
    tag_structure,
    tag_techniques,
)
from episode_talk.models.generation import (
    LENGTH_MAX,
    FreeTextResult,
    GenerationMeta,
    GenerationResult,
)

logger = logging.getLogger(__name__)

TITLE_PLACEHOLDER = "（タイトル取得失敗）"

NOTE_NOT_JSON = "モデル出力が所定のJSON形式を満たさなかったため、本文をそのまま返しています。"
NOTE_TOO_SHORT = "本文が目安の文字数より短いため、再生成をおすすめします。"
NOTE_EMPTY = "モデルから本文が返されませんでした。再生成してください。"
NOTE_REVERSAL_ADDED = "転（どんでん返し）が見つからなかったため、補完の段落を追加しました。"

# Body shorter than this fraction of the window's lower bound gets a note
SHORT_OUTPUT_RATIO = 0.8

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Extract the JSON object from model output.

    Strategy:
    1. Strip a surrounding Markdown code fence
    2. Try direct json.loads
    3. Fall back to the outermost ``{...}`` span

    Returns:
        The decoded object, or None if no JSON object could be recovered.
    """
    if not text or not isinstance(text, str):
        return None

    candidate = text.strip()
    fenced = _CODE_FENCE.match(candidate)
    if fenced:
        candidate = fenced.group(1).strip()

    # ValueError covers JSONDecodeError and oversized integer literals
    try:
        data = json.loads(candidate)
    except (ValueError, RecursionError):
        start = candidate.find("{")
        end = candidate.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(candidate[start : end + 1])
        except (ValueError, RecursionError):
            return None

    return data if isinstance(data, dict) else None


def _coerce_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _coerce_labels(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    labels = []
    for item in value:
        label = _coerce_text(item)
        if label:
            labels.append(label)
    return labels


def is_too_short(body: str, length: int, length_cap: int = LENGTH_MAX) -> bool:
    """Whether ``body`` falls clearly short of the requested length."""
    lower, _ = target_length_window(length, length_cap)
    return len(body) < lower * SHORT_OUTPUT_RATIO


def fallback_result(raw: str) -> GenerationResult:
    """Result for output that does not satisfy the JSON structure."""
    return GenerationResult(
        title=TITLE_PLACEHOLDER,
        body=raw.strip() if isinstance(raw, str) else "",
        meta=GenerationMeta(),
        note=NOTE_NOT_JSON,
    )


def normalize_structured(
    raw: str,
    length: int,
    length_cap: int = LENGTH_MAX,
) -> GenerationResult:
    """Turn JSON-mode model output into a GenerationResult.

    Args:
        raw: Text returned by the model.
        length: Requested target length.
        length_cap: Absolute upper limit of the length window.

    Returns:
        The parsed result, or the fallback result carrying the raw text.
    """
    data = extract_json_object(raw)
    if data is None:
        logger.warning("Model output is not a JSON object; using raw text as body")
        return fallback_result(raw)

    meta = data.get("meta")
    if not isinstance(meta, dict):
        meta = {}

    result = GenerationResult(
        title=_coerce_text(data.get("title")),
        body=_coerce_text(data.get("body")),
        meta=GenerationMeta(
            structure=_coerce_labels(meta.get("structure")),
            techniques=_coerce_labels(meta.get("techniques")),
        ),
    )

    if is_too_short(result.body, length, length_cap):
        logger.info(
            f"Generated body is short ({len(result.body)} chars for length={length})"
        )
        result.note = NOTE_TOO_SHORT

    return result


def normalize_free_text(
    raw: str,
    length: int,
    length_cap: int = LENGTH_MAX,
) -> FreeTextResult:
    """Turn free-text model output into a FreeTextResult with inferred meta.

    A synthetic reversal paragraph is appended when the text has none.

    Args:
        raw: Text returned by the model.
        length: Requested target length.
        length_cap: Absolute upper limit of the length window.

    Returns:
        FreeTextResult with heuristic structure and technique labels.
    """
    text = raw.strip() if isinstance(raw, str) else ""
    if not text:
        return FreeTextResult(text="", note=NOTE_EMPTY)

    notes = []
    if is_too_short(text, length, length_cap):
        notes.append(NOTE_TOO_SHORT)

    text, added = ensure_reversal(text)
    if added:
        logger.info("No reversal detected in free text; appended synthetic paragraph")
        notes.append(NOTE_REVERSAL_ADDED)

    structure = tag_structure(text)
    if added and REVERSAL not in structure:
        structure.append(REVERSAL)

    return FreeTextResult(
        text=text,
        meta=GenerationMeta(structure=structure, techniques=tag_techniques(text)),
        note=" ".join(notes) or None,
    )
