"""Kubik host: components with two-phase activation and the App that runs them."""

from .component import Component, HOOK_PHASES
from .app import App
from .builtin import ConfigComponent, LogComponent
from .helpers import assign_deep

__all__ = [
    "Component",
    "HOOK_PHASES",
    "App",
    "ConfigComponent",
    "LogComponent",
    "assign_deep",
]
