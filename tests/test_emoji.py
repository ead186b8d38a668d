"""
Emoji index loading and row construction.
"""

import json

import pytest

from fetchmoji.core.emoji import (
    EmojiRow,
    build_emoji_rows,
    build_meta,
    emoji_content,
    load_emoji_index,
)


def test_bundled_index_loads():
    index = load_emoji_index()

    assert "📣" in index
    assert "shout" in index["📣"]


def test_load_custom_index(tmp_path):
    path = tmp_path / "index.json"
    path.write_text(json.dumps({"🧪": ["test_tube", "science"]}), encoding="utf-8")

    assert load_emoji_index(path) == {"🧪": ["test_tube", "science"]}


def test_rows_keep_name_first_and_dedupe():
    rows = build_emoji_rows({"🔥": ["fire", "hot", "flame", "hot", "fire"]})

    assert rows == [EmojiRow(id="🔥", name="fire", keywords=["fire", "flame", "hot"])]


def test_row_without_keywords_uses_glyph():
    rows = build_emoji_rows({"🫥": []})

    assert rows[0].name == "🫥"
    assert emoji_content(rows[0]) == "🫥 🫥"


def test_empty_index_fails():
    with pytest.raises(ValueError):
        build_emoji_rows({})


def test_content_replaces_underscores():
    row = EmojiRow(id="😱", name="scream", keywords=["scream", "face_screaming", "shout"])

    assert emoji_content(row) == "😱 scream face screaming shout"


def test_meta_matches_rows():
    rows = build_emoji_rows({"a": ["alpha"], "b": ["beta", "second"]})

    assert build_meta(rows) == [
        {"id": "a", "content": "a alpha"},
        {"id": "b", "content": "b beta second"},
    ]
