import json
import logging
import shlex
import subprocess
from pathlib import Path

from django.conf import settings

from .errors import ConversionFailed, ConversionTimeout

logger = logging.getLogger(__name__)

# Output is truncated before it is stored on the job.
DIAGNOSTICS_LIMIT = 4000

VIDEO_FORMAT_SELECTOR = "bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best"


def _base_command() -> list[str]:
    return shlex.split(settings.DECODER_COMMAND)


def _as_text(data) -> str:
    # TimeoutExpired keeps raw bytes even when text=True was requested
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="ignore")
    return data or ""


def _diagnostics(stdout: str | None, stderr: str | None) -> str:
    parts = []
    if stdout:
        parts.append(f"--- stdout ---\n{stdout.strip()}")
    if stderr:
        parts.append(f"--- stderr ---\n{stderr.strip()}")
    return "\n".join(parts)[-DIAGNOSTICS_LIMIT:]


def build_command(source_url: str, desired_format: str, output_dir: Path) -> list[str]:
    """Decoder invocation writing a single file named after the video title into output_dir."""
    cmd = _base_command() + ["--no-playlist", "--no-progress"]
    if desired_format == "audio":
        cmd += [
            "-x",
            "--audio-format", "mp3",
            "--audio-quality", "0",
        ]
    else:
        cmd += [
            "-f", VIDEO_FORMAT_SELECTOR,
            "--merge-output-format", "mp4",
        ]
    cmd += [
        "-o", str(Path(output_dir) / "%(title)s.%(ext)s"),
        source_url,
    ]
    return cmd


def run(cmd: list[str], timeout: int | None = None) -> subprocess.CompletedProcess:
    """
    Run the decoder with a hard wall-clock limit.

    subprocess.run kills the child when the timeout expires. Every failure is
    raised as a JobError subclass carrying the captured output.
    """
    timeout = timeout or settings.DECODER_TIMEOUT_SECONDS
    logger.debug("Running decoder: %s", shlex.join(cmd))
    try:
        completed = subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        logger.error("Decoder executable not found: %s", cmd[0])
        raise ConversionFailed(diagnostics=str(e)) from e
    except subprocess.TimeoutExpired as e:
        diag = _diagnostics(_as_text(e.stdout), _as_text(e.stderr))
        logger.warning("Decoder timed out after %ss\n%s", timeout, diag)
        raise ConversionTimeout(diagnostics=diag) from e
    except subprocess.CalledProcessError as e:
        diag = _diagnostics(e.stdout, e.stderr)
        logger.warning("Decoder exited with status %s\n%s", e.returncode, diag)
        raise ConversionFailed(diagnostics=diag) from e

    logger.debug("Decoder finished\n%s", _diagnostics(completed.stdout, completed.stderr))
    return completed


def probe(source_url: str) -> dict:
    """Fetch title/uploader/thumbnail/duration without downloading anything."""
    cmd = _base_command() + ["--no-playlist", "--dump-single-json", "--skip-download", source_url]
    completed = run(cmd)
    try:
        info = json.loads(completed.stdout)
    except ValueError as e:
        raise ConversionFailed(
            "The decoder returned unreadable metadata.",
            diagnostics=_diagnostics(completed.stdout, completed.stderr),
        ) from e

    thumbnail = info.get("thumbnail")
    if not thumbnail and info.get("thumbnails"):
        thumbnail = info["thumbnails"][-1].get("url")

    return {
        "title": info.get("title"),
        "author": info.get("uploader") or info.get("channel"),
        "thumbnail": thumbnail,
        "duration": info.get("duration"),
    }
