"""Line-level helpers for gettext PO files."""

from __future__ import annotations

from pathlib import Path


def count_po_entries(path: str | Path) -> int:
    """Count the msgid entries of a PO file, not counting the header entry.

    The header is the first entry when its msgid is the empty string on a
    single line. Obsolete ``#~`` entries are not counted.
    """
    lines = [line.strip() for line in Path(path).read_text(encoding="utf-8", errors="replace").splitlines()]
    count = 0
    has_header = False
    for index, line in enumerate(lines):
        if not line.startswith("msgid "):
            continue
        if count == 0:
            following = lines[index + 1] if index + 1 < len(lines) else ""
            has_header = line == 'msgid ""' and not following.startswith('"')
        count += 1
    return count - 1 if has_header else count


def derive_review_paths(path: str | Path) -> tuple[Path, Path]:
    """Map ``x.po``, ``x.json`` or ``x`` to the pair (``x.json``, ``x.po``)."""
    text = str(path)
    for suffix in (".json", ".po"):
        if text.endswith(suffix):
            text = text[: -len(suffix)]
            break
    return Path(text + ".json"), Path(text + ".po")
