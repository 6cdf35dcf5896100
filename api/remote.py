import logging

import requests
from django.conf import settings

from .errors import UpstreamError
from .utils import canonical_url

logger = logging.getLogger(__name__)

# status values of the download-resolution API that carry a usable url
RESOLVED_STATUSES = {"success", "redirect", "stream", "tunnel"}


def _json_or_raise(resp: requests.Response, what: str) -> dict:
    try:
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("%s returned an unusable response (HTTP %s): %s", what, resp.status_code, e)
        raise UpstreamError() from e
    if not isinstance(data, dict):
        logger.warning("%s returned %s instead of an object", what, type(data).__name__)
        raise UpstreamError()
    return data


def fetch_oembed(video_id: str) -> dict:
    """Public metadata for a video via YouTube's oEmbed endpoint."""
    params = {"url": canonical_url(video_id), "format": "json"}
    try:
        resp = requests.get(settings.OEMBED_URL, params=params, timeout=settings.HTTP_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.warning("oEmbed request for %s failed: %s", video_id, e)
        raise UpstreamError("Could not fetch video information.") from e

    info = _json_or_raise(resp, "oEmbed")
    return {
        "title": info.get("title"),
        "author": info.get("author_name"),
        "thumbnail": info.get("thumbnail_url"),
    }


def resolve_download(source_url: str, desired_format: str) -> str:
    """
    Ask the cobalt-style API for a direct download link.

    The API's contract is not formally specified; any status other than the
    known url-bearing ones is treated as failure and its ``text`` logged.
    """
    audio_only = desired_format == "audio"
    payload = {
        "url": source_url,
        "vQuality": "720",
        "aFormat": "mp3" if audio_only else "best",
        "isAudioOnly": audio_only,
    }
    if not audio_only:
        payload["vCodec"] = "h264"

    try:
        resp = requests.post(
            settings.COBALT_API_URL,
            json=payload,
            headers={"Accept": "application/json"},
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.warning("Download API request failed: %s", e)
        raise UpstreamError() from e

    result = _json_or_raise(resp, "Download API")
    if result.get("status") in RESOLVED_STATUSES and result.get("url"):
        return result["url"]

    logger.warning("Download API refused %s: status=%s text=%s", source_url, result.get("status"), result.get("text"))
    raise UpstreamError()
