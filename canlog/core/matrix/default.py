from __future__ import annotations

import functools
import importlib.resources

from canlog.core.matrix.models import CanMatrix
from canlog.core.matrix.parser import parse_matrix


DEFAULT_MATRIX_RESOURCE = "data/default_matrix.dbc"


def default_matrix_text() -> str:
    return importlib.resources.files("canlog").joinpath(DEFAULT_MATRIX_RESOURCE).read_text(encoding="utf-8")


@functools.lru_cache(maxsize=1)
def load_default_matrix() -> CanMatrix:
    """Bundled catalog, parsed once per process and shared read-only."""
    return parse_matrix(default_matrix_text())
