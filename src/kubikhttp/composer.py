"""
=============================================================================
EXTENSION COMPOSER
=============================================================================

Turns contributions into pipeline stages.

A contribution is one of:

    callable                   request stage: pipeline.use(fn)
    {name, router}             sub-router: pipeline.mount(name, router)
                               (object attributes or mapping keys)
    anything else              ignored

An extension, queued with Component.use(), is one of:

    callable                   request stage
    {middlewares: [...]}       each item applied as a contribution
    {volumes: [...]}           directories added for route discovery

Both keys may appear in one extension. The queue is drained once:
applying it twice never registers a stage twice.
=============================================================================
"""

from collections.abc import Mapping
from typing import Any, Iterable, List
import logging

from .middleware.base import Pipeline, stage_name


logger = logging.getLogger(__name__)


def _field(contribution: Any, key: str) -> Any:
    if isinstance(contribution, Mapping):
        return contribution.get(key)
    return getattr(contribution, key, None)


def is_named_router(contribution: Any) -> bool:
    """True for anything exposing a string name and a router."""
    name = _field(contribution, "name")
    return isinstance(name, str) and bool(name) and _field(contribution, "router") is not None


def apply_contribution(pipeline: Pipeline, contribution: Any) -> bool:
    """
    Apply one contribution.

    Returns:
        Whether anything was added to the pipeline.
    """
    if is_named_router(contribution):
        pipeline.mount(_field(contribution, "name"), _field(contribution, "router"))
        return True
    if callable(contribution):
        pipeline.use(contribution)
        return True
    logger.debug(f"Ignoring contribution {contribution!r}: neither a stage nor a named router")
    return False


def apply_contributions(pipeline: Pipeline, contributions: Iterable[Any]) -> None:
    """Apply contributions in order."""
    for contribution in contributions:
        apply_contribution(pipeline, contribution)


class ExtensionComposer:
    """
    Applies a kubik's queued extensions to its pipeline.

    extensions and volumes are the kubik's own lists, shared, not copied:
    draining empties the kubik's queue and new volumes land in its
    directory list.
    """

    def __init__(self, pipeline: Pipeline, extensions: List[Any], volumes: List[str]):
        self.pipeline = pipeline
        self.extensions = extensions
        self.volumes = volumes

    def apply_extensions(self) -> None:
        queue = list(self.extensions)
        self.extensions.clear()

        for extension in queue:
            if callable(extension):
                self.pipeline.use(extension)
                logger.debug(f"Extension stage: {stage_name(extension)}")
                continue

            middlewares = _field(extension, "middlewares")
            if isinstance(middlewares, (list, tuple)):
                apply_contributions(self.pipeline, middlewares)

            volumes = _field(extension, "volumes")
            if isinstance(volumes, (list, tuple)):
                self.volumes.extend(str(volume) for volume in volumes)
