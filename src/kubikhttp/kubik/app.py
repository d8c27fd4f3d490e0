"""
=============================================================================
APP: THE KUBIK HOST
=============================================================================

Holds kubiks and activates them in dependency order:

    app = App([ConfigComponent(configs), LogComponent(), HTTP("routes")])
    await app.up()      # every up(deps), then every after()
    ...
    await app.down()    # stop() in reverse order

    ┌─────────────────────────────────────────────────────────────────────┐
    │   config ──┐                                                        │
    │            ├──► http ──┬──► http/api                                │
    │   log ─────┘           └──► http/socket                             │
    │                                                                     │
    │   up:     config, log, http, http/api, http/socket                  │
    │   after:  same order, once every up() finished                      │
    └─────────────────────────────────────────────────────────────────────┘
=============================================================================
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional
import logging

from ..errors import ConfigurationError
from .component import Component


logger = logging.getLogger(__name__)


class App:
    """Registry and lifecycle driver for kubiks."""

    def __init__(self, components: Optional[Iterable[Component]] = None):
        self.kubiks: Dict[str, Component] = {}
        self.is_up = False
        self._order: List[Component] = []
        for component in components or ():
            self.add(component)

    def add(self, component: Component) -> "App":
        """
        Register a kubik.

        Raises:
            ValueError: A kubik with the same name is already registered.
        """
        if not component.name:
            raise ValueError(f"{component!r} has no name")
        if component.name in self.kubiks:
            raise ValueError(f"Kubik {component.name!r} is already added")
        component.app = self
        self.kubiks[component.name] = component
        return self

    def get(self, name: str) -> Optional[Component]:
        return self.kubiks.get(name)

    def __getitem__(self, name: str) -> Component:
        return self.kubiks[name]

    def __contains__(self, name: object) -> bool:
        return name in self.kubiks

    def use(self, extensions: Mapping) -> "App":
        """
        Hand extensions to kubiks by name.

            app.use({"http": {"middlewares": [auth]},
                     "http/api": {"api_response_extension": {"v": 2}}})

        Raises:
            ConfigurationError: No kubik with one of the names.
        """
        for name, extension in extensions.items():
            component = self.kubiks.get(name)
            if component is None:
                raise ConfigurationError(f"Kubik {name} is not added to the app")
            component.use(extension)
        return self

    def activation_order(self) -> List[Component]:
        """
        Kubiks ordered so each follows its dependencies.

        Registration order is kept wherever dependencies allow.

        Raises:
            ConfigurationError: Missing dependency or a dependency cycle.
        """
        ordered: List[Component] = []
        state: Dict[str, str] = {}

        def visit(component: Component, chain: List[str]) -> None:
            if state.get(component.name) == "done":
                return
            if state.get(component.name) == "visiting":
                cycle = " -> ".join(chain + [component.name])
                raise ConfigurationError(f"Dependency cycle: {cycle}")

            state[component.name] = "visiting"
            for dependency in component.dependencies:
                if dependency not in self.kubiks:
                    raise ConfigurationError(
                        f"Kubik {component.name} depends on {dependency}, which is not added"
                    )
                visit(self.kubiks[dependency], chain + [component.name])
            state[component.name] = "done"
            ordered.append(component)

        for component in self.kubiks.values():
            visit(component, [])
        return ordered

    async def up(self) -> "App":
        """Run up(deps) on every kubik, then after() on every kubik."""
        self._order = self.activation_order()

        for component in self._order:
            deps = {name: self.kubiks[name] for name in component.dependencies}
            logger.debug(f"Up {component.name}")
            await component.up(deps)

        for component in self._order:
            logger.debug(f"After {component.name}")
            await component.after()

        self.is_up = True
        return self

    async def down(self) -> None:
        """Stop kubiks that can be stopped, dependents first."""
        for component in reversed(self._order or list(self.kubiks.values())):
            stop = getattr(component, "stop", None)
            if callable(stop):
                logger.debug(f"Stop {component.name}")
                await stop()
        self.is_up = False
