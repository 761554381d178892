from __future__ import annotations

from canlog.core.matrix.default import load_default_matrix
from canlog.core.matrix.loader import MatrixError, load_matrix_file, resolve_matrix
from canlog.core.matrix.models import CanMatrix, MessageDefinition, SignalDefinition, normalize_message_id
from canlog.core.matrix.parser import parse_matrix

__all__ = [
    "CanMatrix",
    "MatrixError",
    "MessageDefinition",
    "SignalDefinition",
    "load_default_matrix",
    "load_matrix_file",
    "normalize_message_id",
    "parse_matrix",
    "resolve_matrix",
]
