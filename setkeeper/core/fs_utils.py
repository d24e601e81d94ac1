from contextlib import contextmanager
import json
import os
from pathlib import Path
import tempfile
import threading
from typing import Any, Callable, Dict, Iterator, Optional

from .logging_utils import log_warning


def ensure_parent_dir(path: Path | str) -> None:
    """
    Ensure the parent directory of a given file path exists.
    Example:
      ensure_parent_dir("/tmp/setkeeper/data/tracks.json")
    """
    directory = os.path.dirname(str(path))
    if directory:
        os.makedirs(directory, exist_ok=True)


def write_json(path: str | Path, data: Any) -> None:
    """
    Write JSON data to a file using an atomic replace.

    The document is written to a temporary file next to the target, fsynced,
    then moved over the target with os.replace. Readers see either the previous
    document or the new one, never a truncated file.
    """
    target_path = Path(path)
    ensure_parent_dir(target_path)

    fd, tmp_path_str = tempfile.mkstemp(
        dir=str(target_path.parent),
        prefix=target_path.name,
        suffix=".tmp",
    )
    tmp_path = Path(tmp_path_str)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, target_path)
    except Exception:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def read_json(
    path: str | Path,
    default: Any = None,
    *,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Any:
    """
    Read a JSON file safely.

    - returns `default` if the file does not exist
    - returns `default` if JSON is invalid or corrupted (optionally calling on_error)
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except json.JSONDecodeError as e:
        if on_error:
            on_error(e)
        return default


class JsonDocument:
    """A JSON object on disk, keyed by string ids.

    Each store (credentials, tracks, collections) owns one document. Reads go
    straight to disk; read-modify-write cycles run under a per-document lock
    so that compare-and-swap and version checks are atomic within a process.
    """

    def __init__(self, path: str | Path, label: str) -> None:
        self.path = str(path)
        self.label = label
        self._lock = threading.RLock()

    def _on_error(self, e: Exception) -> None:
        log_warning(f"{self.label} file is corrupted; ignoring it ({e}).")

    def load(self) -> Dict[str, Any]:
        data = read_json(self.path, default={}, on_error=self._on_error)
        if not isinstance(data, dict):
            self._on_error(ValueError("top-level value is not an object"))
            return {}
        return data

    def save(self, data: Dict[str, Any]) -> None:
        write_json(self.path, data)

    @contextmanager
    def transaction(self) -> Iterator[Dict[str, Any]]:
        """
        Yield the current document for in-place mutation and persist it on
        normal exit. Nothing is written if the block raises.
        """
        with self._lock:
            data = self.load()
            yield data
            self.save(data)

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield
