"""
Ephemeral job store.

Owns the lifecycle of one conversion: validate, give it an isolated directory
under DOWNLOADS_ROOT named by the job id, run the decoder into it, discover the
single file it produced, expose it while READY and finally delete it.

Cleanup is two-tier: a completed transfer pulls the job's ``expires_at``
forward to a short window, and the periodic sweep deletes everything that is
either past its ``expires_at`` or older than the age threshold. No per-job
timers are kept in memory, so a restart does not orphan a deletion.
"""
import logging
import shutil
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from django.conf import settings
from django.utils import timezone

from . import decoder
from .errors import ArtifactMissing, ConversionFailed, InvalidRequest, JobError, JobNotFound, SweepError
from .models import Job
from .utils import canonical_url, extract_video_id

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {c.value for c in Job.Format}

# decoder leftovers that never count as the artifact
_PARTIAL_SUFFIXES = {".part", ".ytdl", ".temp", ".tmp"}

CHUNK_SIZE = 64 * 1024


@dataclass
class SweepResult:
    expired: int = 0
    removed: int = 0
    errors: int = 0
    removed_ids: list = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"expired": self.expired, "removed": self.removed, "errors": self.errors}


def downloads_root() -> Path:
    return Path(settings.DOWNLOADS_ROOT)


def job_dir(job_id) -> Path:
    return downloads_root() / str(job_id)


def _update(job: Job, *, status=None, output_path=None, error=None, diagnostics=None, **timestamps):
    fields = ["updated_at"]
    if status:
        job.status = status
        fields.append("status")
    if output_path is not None:
        job.output_path = output_path
        fields.append("output_path")
    if error is not None:
        job.error = error
        fields.append("error")
    if diagnostics is not None:
        job.diagnostics = diagnostics
        fields.append("diagnostics")
    for name, value in timestamps.items():
        setattr(job, name, value)
        fields.append(name)
    job.save(update_fields=fields)


def validate(source_url, desired_format) -> str:
    """Return the video id, or raise InvalidRequest. Touches nothing."""
    if desired_format not in SUPPORTED_FORMATS:
        raise InvalidRequest(f"Unsupported format {desired_format!r}. Allowed: {sorted(SUPPORTED_FORMATS)}")
    video_id = extract_video_id(source_url)
    if not video_id:
        raise InvalidRequest("Invalid YouTube URL.")
    return video_id


def _discover_artifact(directory: Path) -> Path:
    candidates = [
        p for p in directory.iterdir()
        if p.is_file() and not p.name.startswith(".") and p.suffix.lower() not in _PARTIAL_SUFFIXES
    ]
    if not candidates:
        raise ArtifactMissing()

    candidates.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    artifact, extras = candidates[0], candidates[1:]
    for extra in extras:
        logger.warning("Discarding extra decoder output %s", extra)
        extra.unlink(missing_ok=True)
    return artifact


def _remove_dir(directory: Path):
    if directory.exists():
        shutil.rmtree(directory)


def submit(source_url, desired_format) -> Job:
    """
    Run one conversion to completion and return the READY job.

    Blocks until the decoder exits or times out. Any failure leaves the job
    FAILED with its directory removed and reaches the caller as a JobError;
    filesystem errors are reported as ConversionFailed.
    """
    video_id = validate(source_url, desired_format)

    job = Job.objects.create(
        source_url=canonical_url(video_id),
        video_id=video_id,
        desired_format=desired_format,
    )
    directory = job_dir(job.id)

    try:
        directory.mkdir(parents=True, exist_ok=False)
        _update(job, status=Job.Status.RUNNING)
        logger.info("Job %s running (%s, %s)", job.id, job.video_id, desired_format)

        cmd = decoder.build_command(job.source_url, desired_format, directory)
        decoder.run(cmd)

        artifact = _discover_artifact(directory)
    except JobError as e:
        logger.warning("Job %s failed: %s", job.id, e.code)
        _update(job, status=Job.Status.FAILED, output_path="", error=e.code, diagnostics=e.diagnostics[:decoder.DIAGNOSTICS_LIMIT])
        _remove_dir(directory)
        raise
    except OSError as e:
        logger.exception("Job %s failed with a filesystem error", job.id)
        failure = ConversionFailed(diagnostics=str(e)[:decoder.DIAGNOSTICS_LIMIT])
        _update(job, status=Job.Status.FAILED, output_path="", error=failure.code, diagnostics=failure.diagnostics)
        shutil.rmtree(directory, ignore_errors=True)
        raise failure from e

    now = timezone.now()
    _update(
        job,
        status=Job.Status.READY,
        output_path=str(artifact),
        ready_at=now,
        expires_at=now + timedelta(minutes=settings.ARTIFACT_RETENTION_MINUTES),
    )
    logger.info("Job %s ready: %s", job.id, artifact.name)
    return job


def get_ready_job(job_id) -> Job:
    """Look up a job whose artifact can be served, or raise JobNotFound."""
    try:
        job = Job.objects.get(pk=job_id)
    except (Job.DoesNotExist, ValueError):
        raise JobNotFound()

    if job.status != Job.Status.READY:
        raise JobNotFound()

    if not Path(job.output_path).is_file():
        # swept from disk behind our back; never serve a stale record
        logger.info("Job %s artifact is gone, marking expired", job.id)
        expire(job)
        raise JobNotFound()
    return job


def open_artifact(job: Job):
    """Open a READY job's artifact for reading, or raise JobNotFound if it vanished."""
    try:
        return open(job.output_path, "rb")
    except OSError:
        logger.info("Job %s artifact could not be opened, marking expired", job.id)
        expire(job)
        raise JobNotFound()


def iter_artifact(job: Job, f, chunk_size: int = CHUNK_SIZE):
    """Yield from an open artifact; a fully consumed iterator counts as a completed transfer."""
    with f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            yield chunk
    mark_fetched(job)


def mark_fetched(job: Job, now: datetime | None = None) -> bool:
    """
    Pull the deletion deadline forward after a completed transfer.

    Only a job that is still READY in the database is touched; one the sweep
    expired mid-transfer stays EXPIRED.
    """
    now = now or timezone.now()
    deadline = now + timedelta(minutes=settings.FETCH_RETENTION_MINUTES)
    expires_at = job.expires_at if job.expires_at and job.expires_at < deadline else deadline
    updated = Job.objects.filter(pk=job.pk, status=Job.Status.READY).update(
        fetched_at=now, expires_at=expires_at, updated_at=now,
    )
    if not updated:
        logger.info("Job %s expired during transfer", job.id)
        return False

    job.fetched_at = now
    job.expires_at = expires_at
    logger.info("Job %s fetched; deletion not before %s", job.id, expires_at.isoformat())
    return True


def expire(job: Job) -> bool:
    """READY -> EXPIRED, removing the job directory. Returns False if the job was not READY."""
    if job.status != Job.Status.READY:
        return False
    _remove_dir(job_dir(job.id))
    updated = Job.objects.filter(pk=job.pk, status=Job.Status.READY).update(
        status=Job.Status.EXPIRED, output_path="", updated_at=timezone.now(),
    )
    job.status = Job.Status.EXPIRED
    job.output_path = ""
    if not updated:
        return False
    logger.info("Job %s expired", job.id)
    return True


def sweep(max_age_minutes: int, now: datetime | None = None) -> SweepResult:
    """
    Delete everything that should no longer exist.

    1. READY jobs whose ``expires_at`` has passed are expired.
    2. Any directory under DOWNLOADS_ROOT whose mtime is more than
       ``max_age_minutes`` old is removed regardless of job status.

    A failure on one entry is logged and counted, and the pass moves on.
    """
    now = now or timezone.now()
    result = SweepResult()

    due = Job.objects.filter(status=Job.Status.READY, expires_at__lte=now)
    for job in due:
        try:
            expired = expire(job)
        except OSError as e:
            result.errors += 1
            logger.warning("Sweep: %s", SweepError(job_dir(job.id), e), exc_info=True)
            continue
        if expired:
            result.expired += 1

    root = downloads_root()
    if not root.is_dir():
        return result

    cutoff = now.timestamp() - max_age_minutes * 60
    try:
        entries = list(root.iterdir())
    except OSError as e:
        result.errors += 1
        logger.warning("Sweep: cannot list %s: %s", root, e)
        return result

    for entry in entries:
        try:
            if not entry.is_dir():
                continue
            if entry.stat().st_mtime >= cutoff:
                continue
            shutil.rmtree(entry)
        except OSError as e:
            result.errors += 1
            logger.warning("Sweep: %s", SweepError(entry, e), exc_info=True)
            continue

        result.removed += 1
        result.removed_ids.append(entry.name)
        logger.info("Sweep: removed %s", entry.name)
        job_id = _as_job_id(entry.name)
        if job_id:
            Job.objects.filter(pk=job_id, status=Job.Status.READY).update(
                status=Job.Status.EXPIRED, output_path="", updated_at=now,
            )

    return result


def _as_job_id(name: str):
    try:
        return uuid.UUID(name)
    except ValueError:
        return None
