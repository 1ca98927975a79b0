from typing import Optional, Sequence

# Keep telemetry values small
NOTE_LENGTH_LIMIT = 280
ELLIPSIS = "..."
NOTE_INDEX_FORMAT = "{index}. {text}"
NOTE_SEPARATOR = "\n"


def shorten_note(notes: Sequence[Optional[str]], limit: int = NOTE_LENGTH_LIMIT, ellipsis: str = ELLIPSIS) -> str:
    """First note entry, cut to `limit` characters with `ellipsis` appended when cut."""
    if not notes or not notes[0]:
        return ""
    first = notes[0]
    if len(first) > limit:
        return first[:limit] + ellipsis
    return first


def join_notes(notes: Sequence[str]) -> str:
    """All notes, one per line, numbered from 1."""
    return NOTE_SEPARATOR.join(
        NOTE_INDEX_FORMAT.format(index=i, text=text)
        for i, text in enumerate(notes, start=1)
    )
