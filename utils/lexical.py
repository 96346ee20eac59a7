# utils/lexical.py
from typing import Optional
import json

from utils.sanitization import is_nonempty_text


def has_lexical_content(state: Optional[str]) -> bool:
    """
    True when a serialized Lexical editor state has a paragraph holding a
    non-whitespace text node. Unparseable state counts as empty.
    """
    if not state:
        return False
    try:
        parsed = json.loads(state)
    except (TypeError, ValueError):
        return False

    root = parsed.get("root") if isinstance(parsed, dict) else None
    children = root.get("children") if isinstance(root, dict) else None
    if not isinstance(children, list):
        return False

    for child in children:
        nodes = child.get("children") if isinstance(child, dict) else None
        if not isinstance(nodes, list):
            continue
        for node in nodes:
            if isinstance(node, dict) and isinstance(node.get("text"), str) and is_nonempty_text(node["text"]):
                return True
    return False


def lexical_from_text(text: str) -> str:
    """Single-paragraph Lexical state for plain text."""
    return json.dumps({
        "root": {
            "children": [{
                "children": [{
                    "detail": 0,
                    "format": 0,
                    "mode": "normal",
                    "style": "",
                    "text": text,
                    "type": "text",
                    "version": 1,
                }],
                "direction": "ltr",
                "format": "",
                "indent": 0,
                "type": "paragraph",
                "version": 1,
            }],
            "direction": "ltr",
            "format": "",
            "indent": 0,
            "type": "root",
            "version": 1,
        }
    })
