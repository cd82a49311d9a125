#!/usr/bin/env python3
"""
Container entrypoint: release, then hand the process over to gunicorn.

    PORT=8080 WEB_CONCURRENCY=2 python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def gunicorn_argv(port: str, workers: str) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    port = (os.environ.get("PORT") or "8080").strip()
    if not port.isdigit() or not 1 <= int(port) <= 65535:
        sys.exit(f"PORT must be an integer between 1 and 65535, got {port!r}")

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        sys.exit(f"Release failed, not starting the API: {e}")

    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()
    os.execvp("gunicorn", gunicorn_argv(port, workers))


if __name__ == "__main__":
    main()
