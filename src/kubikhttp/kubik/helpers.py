"""Small helpers shared by kubiks."""

from collections.abc import Mapping
from typing import Any, Dict
import copy


def assign_deep(target: Dict[str, Any], *sources: Any) -> Dict[str, Any]:
    """
    Merge mappings into target, recursing into nested mappings.

        options = {"json": {"limit": "100kb"}, "urlencoded": {"limit": "100kb"}}
        assign_deep(options, {"json": {"limit": "1mb"}})
        # {"json": {"limit": "1mb"}, "urlencoded": {"limit": "100kb"}}

    Values from sources are copied, never shared. None sources are
    skipped. Returns target.
    """
    for source in sources:
        if source is None:
            continue
        for key, value in source.items():
            if isinstance(value, Mapping) and isinstance(target.get(key), dict):
                assign_deep(target[key], value)
            elif isinstance(value, Mapping):
                target[key] = assign_deep({}, value)
            else:
                target[key] = copy.deepcopy(value)
    return target
