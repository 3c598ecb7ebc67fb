"""Low-level FFmpeg and FFprobe subprocess runners."""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from pathlib import Path

from cutlist.errors import (
    CutListError,
    FFMPEG_NOT_FOUND,
    FFPROBE_NOT_FOUND,
    FFMPEG_TIMEOUT,
    FFMPEG_FAILED,
    recovery_hints,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300  # analysis passes read the whole window

# Discovery runs once per process
_cache: dict[str, str] = {}


def reset_cache() -> None:
    """Forget discovered binary paths. Useful for testing."""
    _cache.clear()


# ---------------------------------------------------------------------------
# Binary discovery
# ---------------------------------------------------------------------------

def _try_env_exact(env_var: str) -> str | None:
    """Check an env var pointing to an exact binary path."""
    value = os.environ.get(env_var)
    if value and Path(value).is_file():
        return value
    return None


def _try_env_dir(binary_name: str) -> str | None:
    """Check CUTLIST_FFMPEG_DIR for a binary by name (with .exe on Windows)."""
    dir_path = os.environ.get("CUTLIST_FFMPEG_DIR")
    if not dir_path:
        return None
    for candidate in (Path(dir_path) / binary_name, Path(dir_path) / f"{binary_name}.exe"):
        if candidate.is_file():
            return str(candidate)
    return None


def _try_static_ffmpeg(binary_name: str) -> str | None:
    """Ask the optional static-ffmpeg package (it bundles both binaries)."""
    try:
        from static_ffmpeg.run import get_or_fetch_platform_executables_else_raise
    except ImportError:
        return None
    try:
        ffmpeg_path, ffprobe_path = get_or_fetch_platform_executables_else_raise()
    except Exception as exc:  # the package downloads on first use
        logger.warning("static-ffmpeg could not provide binaries: %s", exc)
        return None
    return ffmpeg_path if binary_name == "ffmpeg" else ffprobe_path


def _discover(binary_name: str) -> str:
    """Walk the fallback chain: exact env var, env dir, PATH, static-ffmpeg."""
    return (
        _try_env_exact(f"CUTLIST_{binary_name.upper()}")
        or _try_env_dir(binary_name)
        or shutil.which(binary_name)
        or _try_static_ffmpeg(binary_name)
        or ""
    )


def _find(binary_name: str, missing_code: str) -> str:
    if binary_name in _cache:
        return _cache[binary_name]
    path = _discover(binary_name)
    if not path:
        raise CutListError(
            code=missing_code,
            message=f"{binary_name} binary not found",
            recovery=recovery_hints(missing_code),
        )
    logger.debug("Using %s at %s", binary_name, path)
    _cache[binary_name] = path
    return path


def find_ffmpeg() -> str:
    """Return the path to the ffmpeg binary, or raise CutListError."""
    return _find("ffmpeg", FFMPEG_NOT_FOUND)


def find_ffprobe() -> str:
    """Return the path to the ffprobe binary, or raise CutListError."""
    return _find("ffprobe", FFPROBE_NOT_FOUND)


# ---------------------------------------------------------------------------
# Subprocess runners
# ---------------------------------------------------------------------------

def _run(cmd: list[str], timeout: int, check: bool) -> subprocess.CompletedProcess:
    name = Path(cmd[0]).name
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        raise CutListError(
            code=FFMPEG_TIMEOUT,
            message=f"{name} timed out after {timeout}s",
            recovery=[f"Increase timeout (current: {timeout}s)", "Check if input file is corrupt"],
            context={"command": cmd, "timeout": timeout},
        ) from exc

    if check and result.returncode != 0:
        stderr_tail = result.stderr[-2000:] if result.stderr else ""
        raise CutListError(
            code=FFMPEG_FAILED,
            message=f"{name} exited with code {result.returncode}",
            recovery=["Check stderr for details", "Verify input file is a valid media file"],
            context={"command": cmd, "returncode": result.returncode, "stderr": stderr_tail},
        )
    return result


def run_ffmpeg(
    args: list[str],
    timeout: int = DEFAULT_TIMEOUT,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run ffmpeg with the given arguments (do NOT include 'ffmpeg' itself).

    Analysis filters report on stderr, so callers parsing filter output
    usually pass ``check=False``.
    """
    return _run([find_ffmpeg(), "-hide_banner", "-nostdin"] + args, timeout, check)


def run_ffprobe(args: list[str], timeout: int = 60) -> subprocess.CompletedProcess:
    """Run ffprobe with the given arguments (do NOT include 'ffprobe' itself)."""
    return _run([find_ffprobe(), "-hide_banner"] + args, timeout, check=True)


def run_ffprobe_json(path: str | Path) -> dict:
    """Run ffprobe and return parsed format/stream JSON for a media file."""
    result = run_ffprobe([
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ])
    return json.loads(result.stdout)
