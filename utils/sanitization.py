# utils/sanitization.py
from typing import Optional, Tuple
import re

CONTROL_CHARS = r"[\x00-\x08\x0b-\x0c\x0e-\x1f\x7f-\x9f]"


def clean_text(value: Optional[str]) -> str:
    if value is None:
        return ""

    text = re.sub(CONTROL_CHARS, "", value)
    text = text.strip()

    text = re.sub(r"\s+", " ", text)

    return text


def is_nonempty_text(value: Optional[str]) -> bool:
    return bool(clean_text(value))


def split_display_name(name: Optional[str]) -> Tuple[str, str]:
    """
    "Ada King Lovelace" -> ("Ada", "King Lovelace"). Splits on the first space only.
    """
    parts = (name or "").split(" ")
    first_name = parts[0] if parts else ""
    last_name = " ".join(parts[1:])
    return first_name, last_name
