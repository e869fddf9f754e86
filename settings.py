# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-02
# Description: settings.py
# -----------------------------------------------------------------------------
import os


def _env(name: str, default: str = "") -> str:
    """Read env var safely and strip whitespace."""
    return (os.getenv(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    v = _env(name, "")
    if v == "":
        return default
    try:
        return int(v)
    except ValueError as e:
        raise RuntimeError(f"Env var {name} must be an int, got {v!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    v = _env(name, "")
    if v == "":
        return default
    v = v.lower()
    if v in ("1", "true", "t", "yes", "y", "on"):
        return True
    if v in ("0", "false", "f", "no", "n", "off"):
        return False
    raise RuntimeError(f"Env var {name} must be a boolean, got {v!r}")


# -----------------------------------------------------------------------------
# Streaming I/O
# -----------------------------------------------------------------------------
# Size of each read from an input file
READ_CHUNK_BYTES = _env_int("KB_READ_CHUNK_BYTES", 64 * 1024)

# Output is spooled in memory up to this size, then rolls over to a temp file
SPOOL_MAX_MEMORY_BYTES = _env_int("KB_SPOOL_MAX_MEMORY_BYTES", 8 * 1024 * 1024)

# Lines read past an unfilled batch before it is dispatched short.
# Bounds the lines the writer holds waiting for that batch.
MAX_REORDER_LINES = _env_int("KB_MAX_REORDER_LINES", 1024)


# -----------------------------------------------------------------------------
# Jobs (multi-file runs)
# -----------------------------------------------------------------------------
# data.jsonl -> data.embedded.jsonl
OUTPUT_SUFFIX = _env("KB_OUTPUT_SUFFIX", ".embedded.jsonl")

# 1 = files are processed one after another (default)
MAX_PARALLEL_FILES = _env_int("KB_MAX_PARALLEL_FILES", 1)

# Uploaded inputs and committed outputs for the API live here
WORK_DIR = _env("KB_WORK_DIR", "./work")

# Remove uploaded inputs from WORK_DIR when their job is deleted
DELETE_UPLOADS_ON_REMOVE = _env_bool("KB_DELETE_UPLOADS_ON_REMOVE", True)


# -----------------------------------------------------------------------------
# Sanity checks (tunable)
# -----------------------------------------------------------------------------
if READ_CHUNK_BYTES <= 0:
    raise RuntimeError("KB_READ_CHUNK_BYTES must be positive")

if MAX_REORDER_LINES <= 0:
    raise RuntimeError("KB_MAX_REORDER_LINES must be positive")

if MAX_PARALLEL_FILES <= 0:
    raise RuntimeError("KB_MAX_PARALLEL_FILES must be positive")

if not OUTPUT_SUFFIX.endswith(".jsonl"):
    raise RuntimeError(f"KB_OUTPUT_SUFFIX must end with '.jsonl', got {OUTPUT_SUFFIX!r}")
