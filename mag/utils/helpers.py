"""Small filesystem, path and time helpers shared across mag."""

import datetime
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .logging import logger


def now_millis() -> int:
    """Milliseconds since the epoch."""
    return int(datetime.datetime.now().timestamp() * 1000)


def get_current_context() -> Dict[str, str]:
    """Time and directory values substituted into the system prompts."""
    return {
        'current_time': datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        'current_directory': os.getcwd(),
    }


def format_template_string(template: str, **kwargs) -> str:
    """``template.format(**kwargs)``, falling back to the raw template on a bad placeholder."""
    try:
        return template.format(**kwargs)
    except (KeyError, IndexError, ValueError) as e:
        logger.error(f"Template formatting error: {e}")
        return template


def resolve_path(path: str, base: Optional[str] = None) -> str:
    """Absolute, symlink-free form of ``path`` relative to ``base`` (default cwd)."""
    if not os.path.isabs(path):
        path = os.path.join(base or os.getcwd(), path)
    return os.path.realpath(path)


def is_within_directory(path: str, directory: str) -> bool:
    """True if resolved ``path`` is ``directory`` itself or lies below it."""
    directory = os.path.realpath(directory)
    return path == directory or path.startswith(directory.rstrip(os.sep) + os.sep)


def safe_file_write(file_path: Path, content: str, description: str = None) -> bool:
    """Create parent directories and write ``content``; log and return False on failure."""
    desc = description or f"file {file_path}"
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
    except OSError as e:
        logger.error(f"Failed to write {desc}: {e}")
        return False
    logger.system(f"Generated {desc}: {file_path}")
    return True


def atomic_json_write(file_path: Path, data: Any) -> None:
    """Write ``data`` as JSON via a temp file in the same directory, then move it into place.

    Raises:
        OSError: if the temp file cannot be written or moved
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=file_path.parent, suffix='.json')
    try:
        with os.fdopen(fd, 'w') as tmp_f:
            json.dump(data, tmp_f, indent=2)
            tmp_f.write("\n")
        shutil.move(temp_name, str(file_path))
    except Exception:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


def check_dependencies() -> None:
    """Warn about missing external CLI tools.

    curl carries every LLM request; sh runs shell tasks.
    """
    missing_deps = [name for name in ("curl", "sh") if shutil.which(name) is None]
    if missing_deps:
        logger.warning(f"Missing CLI tool(s): {', '.join(missing_deps)}. "
                       "LLM requests need curl and shell tasks need sh.")
    logger.debug("Dependency check complete.")


