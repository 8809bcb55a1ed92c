"""Fixed-vocabulary matching for yes/no replies to a proposed change."""

import re
from enum import StrEnum


class Confirmation(StrEnum):
    """How the latest user message answers a pending question."""

    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"


_AFFIRMATIVE_PHRASE = (
    r"(?:yes|yeah|yea|yep|yup|sure|ok|okay|k|confirm|confirmed|correct|right|"
    r"absolutely|definitely|please|please do|do it|go ahead|go for it|"
    r"sounds good|that's right|thats right|that works|perfect|great|"
    r"thanks|thank you)"
)
_AFFIRMATIVE = re.compile(rf"^(?:{_AFFIRMATIVE_PHRASE}[\s,.!]*)+$")
_NEGATIVE = re.compile(
    r"^(?:no|nope|nah|cancel|never\s*mind|nvm|don't|dont|do not|stop|forget it)\b"
)


def classify_confirmation(text: str) -> Confirmation | None:
    """Return the confirmation kind of a message, or None for anything else."""
    normalized = " ".join(text.strip().lower().split())
    if not normalized:
        return None
    if _NEGATIVE.match(normalized):
        return Confirmation.NEGATIVE
    if _AFFIRMATIVE.match(normalized):
        return Confirmation.AFFIRMATIVE
    return None
