import re

# watch?v=<id> may sit anywhere in the query string
_URL_PATTERNS = [
    re.compile(
        r"^(?:https?://)?(?:www\.|m\.|music\.)?youtube\.com/watch\?(?:[^#]*&)?v=([^&\s?#/]+)",
        re.IGNORECASE,
    ),
    re.compile(
        r"^(?:https?://)?(?:www\.|m\.|music\.)?youtube\.com/(?:embed|shorts)/([^&\s?#/]+)",
        re.IGNORECASE,
    ),
    re.compile(r"^(?:https?://)?(?:www\.)?youtu\.be/([^&\s?#/]+)", re.IGNORECASE),
]
_BARE_ID = re.compile(r"^[A-Za-z0-9_-]{11}$")


def extract_video_id(value) -> str | None:
    """Return the video id for a recognised YouTube URL (or bare id), else None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    for pattern in _URL_PATTERNS:
        match = pattern.match(value)
        if match:
            return match.group(1)
    if _BARE_ID.match(value):
        return value
    return None


def canonical_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def safe_filename(title: str, ext: str) -> str:
    """Replace anything but ASCII letters and digits with '_' (e.g. 'My Song!' -> 'My_Song_')."""
    stem = re.sub(r"[^a-zA-Z0-9]", "_", title or "") or "download"
    return f"{stem}.{ext}"
