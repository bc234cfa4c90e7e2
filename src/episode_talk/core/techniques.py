"""Heuristic tagging of narrative phases and comedic techniques in free text.

Each table is an ordered list of ``(label, predicate)`` rules. Every rule is
evaluated independently and matching labels are reported in table order.
"""

import re
from collections.abc import Callable, Sequence

Predicate = Callable[[str], bool]
Rule = tuple[str, Predicate]

INTRODUCTION = "起（フリ）"
DEVELOPMENT = "承（展開）"
REVERSAL = "転（ボケ/意外性）"
PAYOFF = "結（オチ）"


def _matches(pattern: str) -> Predicate:
    compiled = re.compile(pattern)
    return lambda text: compiled.search(text) is not None


def _section_marker(*names: str) -> str:
    """Pattern for explicit section labels such as 【起】, [起] or [introduction]."""
    alternatives = "|".join(names)
    return rf"[【\[［]\s*(?:{alternatives})\s*[】\]］]"


# Dialogue lines in 「」
_DIALOGUE = re.compile(r"「[^「」]+」")

# 「AもBもCも」: three parallel clauses joined by も
_THREE_PARALLEL = re.compile(r"[^、。「」\s]{1,15}も[、，]?[^、。「」\s]{1,15}も[、，]?[^、。「」\s]{1,15}も")


def _has_dialogue(text: str) -> bool:
    return len(_DIALOGUE.findall(text)) >= 2


def _has_three_step(text: str) -> bool:
    if re.search(r"三段落ち|(三|3|３)(段|ステップ)", text):
        return True
    return _THREE_PARALLEL.search(text) is not None


STRUCTURE_RULES: list[Rule] = [
    (
        INTRODUCTION,
        _matches(_section_marker("起", "introduction", "intro") + r"|フリ"),
    ),
    (
        DEVELOPMENT,
        _matches(_section_marker("承", "development") + r"|展開"),
    ),
    (
        REVERSAL,
        _matches(
            _section_marker("転", "reversal", "twist")
            + r"|どんでん返し|ところが|まさか|実は|なんと"
        ),
    ),
    (
        PAYOFF,
        _matches(_section_marker("結", "conclusion", "punchline") + r"|オチ"),
    ),
]

TECHNIQUE_RULES: list[Rule] = [
    ("ボケとツッコミ", _matches(r"ボケ|ツッコ|なんでやねん|いや、?なんで|どういうこと")),
    ("会話体", _has_dialogue),
    ("三段落ち", _has_three_step),
    ("反復", _matches(r"反復|同じ|また[もし]?|天丼")),
    ("誇張", _matches(r"誇張|大げさ|世界一|史上最|百回|千回|一万")),
    ("対比", _matches(r"対比|ギャップ|まるで|よりも|なのに")),
]

# Appended when the text never turns; keeps the four-part arc intact.
SYNTHETIC_REVERSAL = (
    "【転】\n"
    "ところが、ここで話がひっくり返ります。"
    "てっきり自分が被害者だと思っていたら、実は一番ややこしくしていたのは自分の方だったんです。"
)


def tag(text: str, rules: Sequence[Rule]) -> list[str]:
    """Return the labels of every rule whose predicate matches ``text``."""
    return [label for label, predicate in rules if predicate(text)]


def tag_structure(text: str) -> list[str]:
    """Detect narrative phases in ``text``."""
    return tag(text, STRUCTURE_RULES)


def tag_techniques(text: str) -> list[str]:
    """Detect comedic techniques in ``text``."""
    return tag(text, TECHNIQUE_RULES)


def has_reversal(text: str) -> bool:
    """Whether ``text`` contains a detectable reversal."""
    return REVERSAL in tag_structure(text)


def ensure_reversal(text: str) -> tuple[str, bool]:
    """Append :data:`SYNTHETIC_REVERSAL` when no reversal is present.

    Returns:
        The (possibly extended) text and whether the paragraph was added.
    """
    if has_reversal(text):
        return text, False

    if text:
        return f"{text}\n\n{SYNTHETIC_REVERSAL}", True
    return SYNTHETIC_REVERSAL, True
