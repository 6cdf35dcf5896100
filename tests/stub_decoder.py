"""
Stand-in for yt-dlp used by the test suite.

Behaviour is picked with STUB_DECODER_MODE:
  ok     write one artifact named after the output template (default)
  two    write two artifacts
  empty  exit 0 without writing anything
  fail   print to stderr and exit 1
  sleep  leave a .part file behind and hang for STUB_DECODER_SLEEP seconds
With --dump-single-json it prints metadata instead of downloading.
"""
import json
import os
import sys
import time

TITLE = "Stub Title"


def main(argv):
    mode = os.environ.get("STUB_DECODER_MODE", "ok")

    if mode == "fail":
        print("ERROR: [youtube] stub: Video unavailable", file=sys.stderr)
        return 1

    if "--dump-single-json" in argv:
        print(json.dumps({
            "title": TITLE,
            "uploader": "Stub Channel",
            "thumbnail": "https://i.ytimg.com/vi/stub/hqdefault.jpg",
            "duration": 212,
        }))
        return 0

    template = argv[argv.index("-o") + 1]
    ext = "mp3" if "-x" in argv else "mp4"
    content = os.environ.get("STUB_DECODER_CONTENT", "stub artifact bytes").encode()

    if mode == "sleep":
        partial = template.replace("%(title)s", TITLE).replace("%(ext)s", ext) + ".part"
        with open(partial, "wb") as f:
            f.write(b"partial")
        print("[download]   3.2% of 40.00MiB", flush=True)
        time.sleep(float(os.environ.get("STUB_DECODER_SLEEP", "30")))
        return 0

    if mode == "empty":
        print("[download] nothing to do")
        return 0

    path = template.replace("%(title)s", TITLE).replace("%(ext)s", ext)
    if mode == "two":
        leftover = template.replace("%(title)s", TITLE).replace("%(ext)s", "webm")
        with open(leftover, "wb") as f:
            f.write(b"leftover")
        old = os.stat(leftover).st_mtime - 60
        os.utime(leftover, (old, old))
    with open(path, "wb") as f:
        f.write(content)
    print(f"[download] Destination: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
