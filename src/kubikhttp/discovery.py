"""
=============================================================================
ROUTE DISCOVERY
=============================================================================

Loads route modules from directories ("volumes") and applies what they
contribute to the pipeline.

    routes/
      users.py          name = "/users"; router = Router()     -> mounted
      auth.py           contribution = check_token             -> stage
      orders/           package, contributes like a module
        __init__.py
      _helpers.py       skipped (leading underscore)
      README.md         skipped (not a module)

Per directory, entries load in lexical order. A module contributes its
"contribution" attribute when it has one, otherwise itself.

The first module that fails to load stops discovery with
DiscoveryLoadError. Routes from modules before it stay mounted; the
error aborts the kubik's up phase, so none of them is ever served.
=============================================================================
"""

from types import ModuleType
from typing import Any, Iterable, List
import asyncio
import hashlib
import importlib.util
import logging
import os
import sys

from .composer import apply_contribution
from .errors import DiscoveryLoadError
from .middleware.base import Pipeline


logger = logging.getLogger(__name__)


def list_modules(directory: str) -> List[str]:
    """
    Loadable module paths in directory, in lexical order.

    Raises:
        DiscoveryLoadError: If the directory cannot be listed.
    """
    try:
        names = sorted(os.listdir(directory))
    except OSError as e:
        raise DiscoveryLoadError(directory, e) from e

    paths = []
    for name in names:
        if name.startswith(("_", ".")):
            continue
        path = os.path.join(directory, name)
        if os.path.isdir(path):
            if os.path.isfile(os.path.join(path, "__init__.py")):
                paths.append(path)
        elif name.endswith(".py"):
            paths.append(path)
    return paths


def _module_name(path: str) -> str:
    # Private namespace per directory, never shadowing installed packages
    directory, entry = os.path.split(os.path.abspath(path))
    digest = hashlib.sha1(directory.encode("utf-8")).hexdigest()[:10]
    stem = entry[:-3] if entry.endswith(".py") else entry
    return f"_kubikhttp_volume_{digest}_{stem}"


def load_module(path: str) -> ModuleType:
    """
    Import a module file or package directory by path.

    Raises:
        DiscoveryLoadError: On any failure, chained to the cause.
    """
    name = _module_name(path)
    try:
        if os.path.isdir(path):
            spec = importlib.util.spec_from_file_location(
                name,
                os.path.join(path, "__init__.py"),
                submodule_search_locations=[path],
            )
        else:
            spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"No loader for {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(name, None)
            raise
    except Exception as e:
        raise DiscoveryLoadError(path, e) from e

    return module


def module_contribution(module: ModuleType) -> Any:
    return getattr(module, "contribution", module)


async def scan(pipeline: Pipeline, directories: Iterable[str]) -> int:
    """
    Load every module of every directory and apply its contribution.

    Returns:
        Number of modules loaded.

    Raises:
        DiscoveryLoadError: First directory or module that failed.
    """
    loaded = 0
    for directory in directories:
        for path in list_modules(directory):
            module = load_module(path)
            applied = apply_contribution(pipeline, module_contribution(module))
            logger.debug(f"Loaded {path}{'' if applied else ' (nothing to apply)'}")
            loaded += 1
            await asyncio.sleep(0)
    return loaded
