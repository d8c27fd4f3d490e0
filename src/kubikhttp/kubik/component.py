"""
=============================================================================
KUBIK: THE COMPONENT PROTOCOL
=============================================================================

A kubik is one pluggable piece of an App. The App activates every kubik
in two phases:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   up(deps)    dependencies are up; wire things together,            │
    │               nothing observable (no sockets) yet                   │
    │                                                                     │
    │   after()     every kubik is up; go live                            │
    └─────────────────────────────────────────────────────────────────────┘

Kubiks expose three extension points:

    hook("before" | "after", fn)   callbacks run by apply_hooks(phase)
    use(extension)                 queued, applied by the kubik during up
    name / dependencies            read by the App to order activation
=============================================================================
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Sequence
import inspect
import logging


logger = logging.getLogger(__name__)

HOOK_PHASES = ("before", "after")

# Keys an extension mapping uses to contribute stages or directories
COMPOSITION_KEYS = ("middlewares", "volumes")

Hook = Callable[["Component"], Any]


class Component:
    """
    Base class for kubiks.

    Subclasses set name and dependencies and override up()/after().

        class Cache(Component):
            name = "cache"
            dependencies = ("config",)

            async def up(self, deps):
                self.settings = deps["config"].get("cache")
    """

    name: str = ""
    dependencies: Sequence[str] = ()

    def __init__(self):
        self.app: Any = None
        self.extensions: List[Any] = []
        self._hooks: Dict[str, List[Hook]] = {phase: [] for phase in HOOK_PHASES}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    # =========================================================================
    # HOOKS
    # =========================================================================

    def hook(self, phase: str, fn: Hook) -> "Component":
        """
        Register a callback for a phase.

        Raises:
            ValueError: Unknown phase.
            TypeError: fn is not callable.
        """
        if phase not in HOOK_PHASES:
            raise ValueError(f"Unknown hook phase {phase!r}, expected one of {HOOK_PHASES}")
        if not callable(fn):
            raise TypeError(f"Hook for {phase!r} must be callable")
        self._hooks[phase].append(fn)
        return self

    async def apply_hooks(self, phase: str) -> None:
        """Run the phase's hooks in registration order, awaiting async ones."""
        for fn in list(self._hooks[phase]):
            result = fn(self)
            if inspect.isawaitable(result):
                await result

    # =========================================================================
    # EXTENSIONS
    # =========================================================================

    def use(self, extension: Any) -> "Component":
        """
        Register an extension.

        A mapping without middlewares/volumes keys whose keys name public
        attributes of this kubik is applied right away as attribute
        assignment:

            api.use({"api_response_extension": {"version": 2}})

        Everything else is queued and applied by the kubik during up.
        """
        if isinstance(extension, Mapping) and not any(key in extension for key in COMPOSITION_KEYS):
            settable = [key for key in extension if self._is_settable(key)]
            if settable and len(settable) == len(extension):
                for key in settable:
                    setattr(self, key, extension[key])
                logger.debug(f"{self.name}: set {', '.join(settable)}")
                return self

        self.extensions.append(extension)
        return self

    def _is_settable(self, key: Any) -> bool:
        if not isinstance(key, str) or key.startswith("_"):
            return False
        if not hasattr(self, key):
            return False
        return not callable(getattr(self, key))

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def up(self, deps: Dict[str, "Component"]) -> None:
        """Wire up with the dependencies named in self.dependencies."""

    async def after(self) -> None:
        """Called once every kubik of the app is up."""
