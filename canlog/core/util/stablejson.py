from __future__ import annotations

import json
from typing import Any


_COMPACT = (",", ":")


def dumps(obj: Any, *, pretty: bool = False, newline: bool = True) -> str:
    """Deterministic JSON: keys sorted, compact unless ``pretty``.

    CLI results and JSONL rows end with a newline; CSV cells pass ``newline=False``.
    """
    if pretty:
        text = json.dumps(obj, sort_keys=True, indent=2)
    else:
        text = json.dumps(obj, sort_keys=True, separators=_COMPACT)
    return text + "\n" if newline else text
