"""File utilities and the run-scoped temp workspace."""

import json
import logging
import shutil
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TEMP_PREFIX = "temp_"
WORK_DIR_NAME = ".work"


def ensure_directory_exists(dir_path: PathLike) -> bool:
    """Create ``dir_path`` if needed; returns whether it exists afterwards."""
    path = Path(dir_path)
    path.mkdir(parents=True, exist_ok=True)
    return path.is_dir()


def get_file_size(file_path: PathLike) -> int:
    """File size in bytes, 0 when the file cannot be read."""
    try:
        return Path(file_path).stat().st_size
    except OSError:
        return 0


def format_file_size(size_bytes: int) -> str:
    """Format a byte count as e.g. ``1.5 KB``."""
    if size_bytes <= 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    exponent = 0
    while size_bytes >= 1024 ** (exponent + 1) and exponent < len(units) - 1:
        exponent += 1
    value = round(size_bytes / (1024 ** exponent), 2)
    return f"{value:g} {units[exponent]}"


def confined_path(base_dir: PathLike, name: PathLike) -> Optional[Path]:
    """
    ``base_dir / name`` if it stays inside ``base_dir``, else None.

    Absolute names and ``..`` segments that leave the directory are
    rejected, symlinks included.
    """
    base = Path(base_dir)
    candidate = base / name
    if not candidate.resolve().is_relative_to(base.resolve()):
        logger.warning(f"Rejected path outside {base}: {name}")
        return None
    return candidate


def find_missing_templates(templates_dir: PathLike, file_names: Iterable[str]) -> List[str]:
    """Return the entries of ``file_names`` absent from ``templates_dir``."""
    base = Path(templates_dir)
    return [name for name in file_names if not (base / name).exists()]


def load_config_file(config_path: PathLike) -> Dict[str, Any]:
    """
    Load a JSON proposal configuration from disk.

    Raises:
        FileNotFoundError: when the file does not exist
        ValueError: when the file is not valid JSON
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Error loading configuration: {e}") from e


class RunWorkspace:
    """
    Private scratch directory for one generation run.

    Temp artifacts are named ``temp_<name>`` inside
    ``<output_dir>/.work/<run_id>/`` so concurrent runs never share paths.
    """

    def __init__(self, output_dir: PathLike, run_id: Optional[str] = None):
        self.run_id = run_id or uuid.uuid4().hex
        self.root = Path(output_dir) / WORK_DIR_NAME / self.run_id
        self.root.mkdir(parents=True, exist_ok=True)
        self._issued: Set[str] = set()
        logger.debug(f"Created run workspace {self.root}")

    def temp_path(self, name: str) -> Path:
        """
        Path for a temp artifact called ``name``.

        A name requested twice in the same run gets a numbered variant
        (``temp_2_<name>``) so sections sharing a template stay distinct.
        """
        safe_name = Path(name).name
        candidate = f"{TEMP_PREFIX}{safe_name}"
        counter = 1
        while candidate in self._issued:
            counter += 1
            candidate = f"{TEMP_PREFIX}{counter}_{safe_name}"
        self._issued.add(candidate)
        return self.root / candidate

    def is_temp_artifact(self, path: PathLike) -> bool:
        """True for files this workspace handed out via :meth:`temp_path`."""
        candidate = Path(path)
        return (
            candidate.name.startswith(TEMP_PREFIX)
            and candidate.resolve().parent == self.root.resolve()
        )

    def close(self) -> None:
        """Remove the workspace directory and anything left in it."""
        shutil.rmtree(self.root, ignore_errors=True)
        work_dir = self.root.parent
        try:
            work_dir.rmdir()
        except OSError:
            # Another run still owns a workspace here
            pass

    def __enter__(self) -> "RunWorkspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
