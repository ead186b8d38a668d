"""
Emoji index: glyph -> keywords, shaped like emojilib's JSON.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

DEFAULT_INDEX_PATH = Path(__file__).resolve().parents[1] / "data" / "emoji.json"


@dataclass
class EmojiRow:
    """An emoji and the keywords it is searchable by."""

    id: str
    """The emoji glyph, used as the search identifier"""

    name: str
    keywords: List[str] = field(default_factory=list)


def load_emoji_index(path=None) -> Dict[str, List[str]]:
    """Load the glyph -> keywords map."""
    path = Path(path) if path else DEFAULT_INDEX_PATH
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def build_emoji_rows(index: Dict[str, List[str]] = None) -> List[EmojiRow]:
    """Build one row per emoji, keeping the first keyword as its name."""
    if index is None:
        index = load_emoji_index()

    rows = []
    for glyph, keywords in index.items():
        if not keywords:
            rows.append(EmojiRow(id=glyph, name=glyph))
            continue
        name = keywords[0]
        # dedupe while keeping the name first
        rest = sorted(set(keywords[1:]) - {name})
        rows.append(EmojiRow(id=glyph, name=name, keywords=[name] + rest))

    if not rows:
        raise ValueError("no emojis found")
    return rows


def emoji_content(row: EmojiRow) -> str:
    """The exact text embedded for a row."""
    words = [word.replace("_", " ") for word in row.keywords] or [row.name]
    return f"{row.id} {' '.join(words)}"


def build_meta(rows: List[EmojiRow]) -> List[dict]:
    """Decode metadata for an embeddings blob built from ``rows``."""
    return [{"id": row.id, "content": emoji_content(row)} for row in rows]
