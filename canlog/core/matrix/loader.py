from __future__ import annotations

import logging
from pathlib import Path

from canlog.core.matrix.default import load_default_matrix
from canlog.core.matrix.models import CanMatrix
from canlog.core.matrix.parser import parse_matrix


log = logging.getLogger(__name__)


class MatrixError(Exception):
    pass


def load_matrix_file(path: str | Path) -> CanMatrix:
    p = Path(path).expanduser()
    try:
        # Catalogs exported by vendor tools are frequently cp1252; never fail on encoding.
        text = p.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError as exc:
        raise MatrixError(f"{p}: file not found") from exc
    except OSError as exc:
        raise MatrixError(f"{p}: failed to read") from exc
    matrix = parse_matrix(text)
    log.debug("Matrix loaded", extra={"path": str(p), "messages": len(matrix), "signals": matrix.signal_count})
    return matrix


def resolve_matrix(path: str | Path | None) -> tuple[CanMatrix, str]:
    """Return the user catalog at ``path`` or the bundled default, with a label."""
    if path is None or not str(path).strip():
        return load_default_matrix(), "default"
    return load_matrix_file(path), str(Path(path).expanduser())
