"""
Safe I/O operations with atomic writes and cooperative file locking.
"""

import contextlib
import errno
import json
import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any, Iterator, Optional, Union

try:  # fcntl is only available on POSIX platforms
    import fcntl  # type: ignore
except ImportError:  # pragma: no cover - Windows fallback
    fcntl = None  # type: ignore


DEFAULT_LOCK_TIMEOUT = 8.0  # seconds
LOCK_SLEEP_INTERVAL = 0.05  # seconds

PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def _lock_file_path(path: Path) -> Path:
    """Return the companion lock file path for the target file."""
    return path.parent / f"{path.name}.lock"


@contextlib.contextmanager
def file_lock(target_path: PathLike, exclusive: bool = True,
              timeout: Optional[float] = DEFAULT_LOCK_TIMEOUT) -> Iterator[None]:
    """Acquire a cooperative file lock around the target path.

    Uses POSIX advisory locking via fcntl when available; otherwise acts as a no-op.
    Raises TimeoutError if the lock cannot be taken within ``timeout`` seconds.
    """
    if fcntl is None:
        yield
        return

    target = Path(os.path.expanduser(str(target_path)))
    lock_path = _lock_file_path(target)
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    lock_type = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
    deadline = time.monotonic() + timeout if timeout is not None else None

    with open(lock_path, "a") as lock_file:
        while True:
            try:
                flags = lock_type | fcntl.LOCK_NB if deadline is not None else lock_type
                fcntl.flock(lock_file.fileno(), flags)
                break
            except OSError as exc:  # pragma: no cover - depends on timing
                if exc.errno not in (errno.EACCES, errno.EAGAIN):
                    raise
                if deadline is not None and time.monotonic() >= deadline:
                    raise TimeoutError(f"Timed out waiting for lock on {target}") from exc
                time.sleep(LOCK_SLEEP_INTERVAL)

        try:
            yield
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def safe_read_json(file_path: PathLike, default: Optional[Any] = None, *,
                   lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> Any:
    """
    Safely read JSON from file with error handling.

    Args:
        file_path: Path to JSON file
        default: Default value to return if file doesn't exist or is invalid

    Returns:
        Parsed JSON data or default value
    """
    if default is None:
        default = {}

    path_obj = Path(os.path.expanduser(str(file_path)))

    if not path_obj.exists():
        return default

    try:
        with file_lock(path_obj, exclusive=False, timeout=lock_timeout):
            with path_obj.open('r', encoding='utf-8') as handle:
                return json.load(handle)
    except TimeoutError as exc:
        logger.warning("Timed out waiting to read %s: %s", path_obj, exc)
        return default
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s: %s", path_obj, exc)
        return default


def _default_file_mode() -> int:
    # umask can only be read by setting it
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def _replace_atomically(path_obj: Path, write, suffix: str,
                        lock_timeout: Optional[float], lock: bool = True) -> bool:
    path_obj.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = None
    guard = (file_lock(path_obj, exclusive=True, timeout=lock_timeout)
             if lock else contextlib.nullcontext())
    try:
        with guard:
            with tempfile.NamedTemporaryFile(
                mode='w',
                dir=str(path_obj.parent),
                prefix='.tmp_',
                suffix=suffix,
                delete=False,
                encoding='utf-8',
                newline=''
            ) as tmp_file:
                tmp_path = Path(tmp_file.name)
                write(tmp_file)

            # NamedTemporaryFile creates 0600 files; keep the target's mode
            if path_obj.exists():
                shutil.copymode(str(path_obj), str(tmp_path))
            else:
                os.chmod(str(tmp_path), _default_file_mode())
            os.replace(str(tmp_path), str(path_obj))
        return True

    except (TimeoutError, OSError, TypeError, ValueError) as exc:
        logger.error("Error writing to %s: %s", path_obj, exc)
    finally:
        if tmp_path and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass

    return False


def safe_write_json(file_path: PathLike, data: Any, indent: int = 2, *,
                    lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> bool:
    """
    Safely write JSON to file with atomic write, under the file's lock.

    Returns:
        True if successful, False otherwise
    """
    path_obj = Path(os.path.expanduser(str(file_path)))
    return _replace_atomically(
        path_obj,
        lambda handle: json.dump(data, handle, indent=indent, ensure_ascii=False, sort_keys=True),
        '.json',
        lock_timeout,
    )


def atomic_write(file_path: PathLike, content: str) -> bool:
    """
    Atomically replace a document with ``content``, written verbatim.

    Used for vault notes: no companion lock file is created, newlines are
    not translated and the existing file mode is kept.

    Returns:
        True if successful, False otherwise
    """
    path_obj = Path(os.path.expanduser(str(file_path)))
    return _replace_atomically(path_obj, lambda handle: handle.write(content), '', None, lock=False)


def remove_file(file_path: PathLike) -> bool:
    """Delete a file if present. Returns True when something was removed."""
    path_obj = Path(os.path.expanduser(str(file_path)))
    try:
        path_obj.unlink()
        return True
    except FileNotFoundError:
        return False
