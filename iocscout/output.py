"""JSON result files, written atomically."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .config import NO_DATA
from .extractor import has_iocs
from .models import IOCMap

logger = logging.getLogger(__name__)


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty JSON via a temp file renamed over *path*.

    A crash mid-write leaves the previous file (or nothing) in place, never
    a truncated one. ``OSError`` propagates to the caller.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        # mkstemp creates 0600; give the result the usual umask-derived mode
        os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return path


def save_records(path: Path, records: list) -> Path:
    """Save extracted records, or the placeholder when there are none."""
    if not records:
        logger.info("No relevant data found for %s", Path(path).name)
        return write_json(path, NO_DATA)

    write_json(path, [r.to_dict() for r in records])
    logger.info("Saved %d records to %s", len(records), path)
    return Path(path)


def save_iocs(path: Path, iocs: IOCMap | None) -> Path:
    """Save categorized IOCs, or the placeholder when every category is empty."""
    if not has_iocs(iocs):
        logger.info("No IOCs found for %s", Path(path).name)
        return write_json(path, NO_DATA)

    write_json(path, iocs)
    logger.info("Saved IOCs to %s", path)
    return Path(path)
