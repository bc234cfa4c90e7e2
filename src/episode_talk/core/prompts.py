"""Prompt templates and the prompt builder for episode generation."""

import random
from dataclasses import dataclass
from typing import Literal, Protocol

from episode_talk.models.generation import LENGTH_MAX, GenerationRequest

OutputMode = Literal["structured", "free_text"]

UNSPECIFIED = "（未指定）"

# Lower bound of the requested length window, as a percentage of `length`
LENGTH_WINDOW_PERCENT = 70

THREE_STEP_LABEL = "三段落ち"
CALLBACK_LABEL = "天丼"

_SAFETY_RULES = """# 禁止事項
- 誹謗中傷・ハラスメント
- 差別的な表現
- 実在の個人を特定できる情報
- 過度な下ネタ・下品な表現
- 固有名詞（有名人・商品名など）の連発"""

SYSTEM_PROMPT = f"""あなたはプロの放送作家です。
一人称で語る日本語の「エピソードトーク」を書きます。笑いの理論（フリ→ボケ→ツッコミ、緩急、反復、誇張、対比）を自然に使い、読みやすい原稿に仕上げてください。

# 出力規律
- 出力はJSONオブジェクトのみ。前置き・後書き・コードブロックは禁止。
- キーは "title"（文字列）、"body"（文字列）、"meta"（オブジェクト）。
- "meta" は "structure"（構成ラベルの配列）と "techniques"（使った技法ラベルの配列）を持つ。

{_SAFETY_RULES}"""

FREE_TEXT_SYSTEM_PROMPT = f"""あなたはプロの放送作家です。
一人称で語る日本語の「エピソードトーク」を書きます。笑いの理論（フリ→ボケ→ツッコミ、緩急、反復、誇張、対比）を自然に使い、読みやすい原稿に仕上げてください。

# 出力規律
- 本文のみを出力する。JSONや解説は付けない。
- 各パートの冒頭に【起】【承】【転】【結】の見出しを付ける。

{_SAFETY_RULES}"""

USER_PROMPT = """# お題
- テーマ: {theme}
- トーン: {genre}
- 登場人物: {characters}

# 制約
- 本文の文字数: {lower}〜{upper}文字
- 構成は必ず「起（フリ）→承（展開）→転（どんでん返し）→結（オチ）」の4部構成にする。
- 転では、それまでの前提がひっくり返る・別の意味だったと判明する展開を入れる。
- 小さな笑いを3つ以上、各パートに散らして入れる。
- 前半に出したフレーズやモチーフを1〜2個、後半で再登場させる（天丼・コールバック）。
- 一文は短く。会話（「」）と地の文を交互に入れてテンポよく。
- 過度な記号や顔文字は使わない。"""

THREE_STEP_INSTRUCTION = """
- 三段落ちを1か所入れる：同じ型の事柄を3つ並べ、1つ目と2つ目で期待を作り、3つ目で裏切る。"""

STRUCTURED_OUTPUT_FORMAT = """

# 出力形式（厳守）
次の形のJSONオブジェクトだけを返す。
{{"title": "タイトル", "body": "本文", "meta": {{"structure": ["起", "承", "転", "結"], "techniques": ["ボケとツッコミ", "{technique}"]}}}}"""

FREE_TEXT_OUTPUT_FORMAT = """

# 出力形式（厳守）
- 本文のみ。【起】【承】【転】【結】の見出し付き。"""


@dataclass(frozen=True)
class PromptPair:
    """System and user instructions for one model call."""

    system: str
    user: str


class RandomSource(Protocol):
    def random(self) -> float: ...


def target_length_window(length: int, cap: int = LENGTH_MAX) -> tuple[int, int]:
    """Compute the character window the model is asked to hit.

    Args:
        length: Requested target length.
        cap: Absolute upper limit for the window.

    Returns:
        ``(lower, upper)`` with ``lower <= upper <= cap``.
    """
    upper = min(length, cap)
    lower = min(length * LENGTH_WINDOW_PERCENT // 100, upper)
    return lower, upper


def draw_style_toggle(rng: RandomSource | None, probability: float) -> bool:
    """Decide once per request whether to ask for a 三段落ち.

    Args:
        rng: Random source; the ``random`` module when None.
        probability: Chance of returning True, from
            ``generation.style_toggle_probability``.

    Returns:
        True if the three-step instruction should be added.
    """
    source = rng if rng is not None else random
    return source.random() < probability


def build_prompts(
    request: GenerationRequest,
    use_three_step: bool,
    *,
    length_cap: int = LENGTH_MAX,
    output_mode: OutputMode = "structured",
) -> PromptPair:
    """Build the system and user instructions for a request.

    Deterministic for a given request and toggle value.

    Args:
        request: Validated request.
        use_three_step: Result of :func:`draw_style_toggle` for this request.
        length_cap: Absolute upper limit for the length window.
        output_mode: ``"structured"`` for JSON output, ``"free_text"`` for body only.

    Returns:
        PromptPair with the system and user instruction strings.
    """
    lower, upper = target_length_window(request.length, length_cap)

    user = USER_PROMPT.format(
        theme=request.theme or UNSPECIFIED,
        genre=request.genre or UNSPECIFIED,
        characters=request.characters or UNSPECIFIED,
        lower=lower,
        upper=upper,
    )

    if use_three_step:
        user += THREE_STEP_INSTRUCTION

    if output_mode == "structured":
        technique = THREE_STEP_LABEL if use_three_step else CALLBACK_LABEL
        user += STRUCTURED_OUTPUT_FORMAT.format(technique=technique)
        return PromptPair(system=SYSTEM_PROMPT, user=user)

    user += FREE_TEXT_OUTPUT_FORMAT
    return PromptPair(system=FREE_TEXT_SYSTEM_PROMPT, user=user)
