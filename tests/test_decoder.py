import subprocess

import pytest

from api import decoder
from api.errors import ConversionFailed, ConversionTimeout

URL = "https://www.youtube.com/watch?v=abc12345678"


def test_build_command_audio(settings, tmp_path):
    settings.DECODER_COMMAND = "yt-dlp"
    cmd = decoder.build_command(URL, "audio", tmp_path)

    assert cmd[0] == "yt-dlp"
    assert "--no-playlist" in cmd
    assert "-x" in cmd
    assert cmd[cmd.index("--audio-format") + 1] == "mp3"
    assert cmd[cmd.index("-o") + 1] == str(tmp_path / "%(title)s.%(ext)s")
    assert cmd[-1] == URL


def test_build_command_video(settings, tmp_path):
    settings.DECODER_COMMAND = "python -m yt_dlp"
    cmd = decoder.build_command(URL, "video", tmp_path)

    assert cmd[:3] == ["python", "-m", "yt_dlp"]
    assert "-x" not in cmd
    assert cmd[cmd.index("-f") + 1] == decoder.VIDEO_FORMAT_SELECTOR
    assert cmd[cmd.index("--merge-output-format") + 1] == "mp4"
    assert cmd[-1] == URL


def test_run_passes_timeout_and_captures_output(settings, monkeypatch):
    settings.DECODER_TIMEOUT_SECONDS = 7
    seen = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return subprocess.CompletedProcess(cmd, 0, stdout="done", stderr="")

    monkeypatch.setattr(decoder.subprocess, "run", fake_run)
    completed = decoder.run(["yt-dlp", URL])

    assert completed.stdout == "done"
    assert seen["timeout"] == 7
    assert seen["capture_output"] is True
    assert seen["check"] is True


def test_run_timeout_raises_conversion_timeout(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"], output=b"partial", stderr=b"still downloading")

    monkeypatch.setattr(decoder.subprocess, "run", fake_run)

    with pytest.raises(ConversionTimeout) as excinfo:
        decoder.run(["yt-dlp", URL], timeout=1)

    assert excinfo.value.code == "Timeout"
    assert "still downloading" in excinfo.value.diagnostics


def test_run_nonzero_exit_raises_conversion_failed(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, output="", stderr="ERROR: Video unavailable")

    monkeypatch.setattr(decoder.subprocess, "run", fake_run)

    with pytest.raises(ConversionFailed) as excinfo:
        decoder.run(["yt-dlp", URL])

    assert excinfo.value.code == "ConversionFailed"
    assert "Video unavailable" in excinfo.value.diagnostics
    # diagnostics are for logs, not for the client-facing message
    assert "Video unavailable" not in excinfo.value.detail


def test_run_missing_binary(settings, tmp_path):
    settings.DECODER_COMMAND = "tubefetch-no-such-decoder-binary"
    with pytest.raises(ConversionFailed):
        decoder.run(decoder.build_command(URL, "audio", tmp_path))


def test_probe_reads_metadata(stub_decoder):
    info = decoder.probe(URL)
    assert info == {
        "title": "Stub Title",
        "author": "Stub Channel",
        "thumbnail": "https://i.ytimg.com/vi/stub/hqdefault.jpg",
        "duration": 212,
    }


def test_probe_failure(stub_decoder):
    stub_decoder("fail")
    with pytest.raises(ConversionFailed):
        decoder.probe(URL)


def test_run_kills_a_hung_decoder(stub_decoder, tmp_path):
    stub_decoder("sleep")

    with pytest.raises(ConversionTimeout) as excinfo:
        decoder.run(decoder.build_command(URL, "audio", tmp_path), timeout=1)

    assert excinfo.value.code == "Timeout"
