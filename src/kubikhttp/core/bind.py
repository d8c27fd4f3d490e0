"""
Bind resolution: turn whatever the config holds for "bind" into a host.

    resolve_bind(0)            -> "0.0.0.0"
    resolve_bind(True)         -> "0.0.0.0"
    resolve_bind("0")          -> "0.0.0.0"
    resolve_bind("0.0.0.0")    -> "0.0.0.0"
    resolve_bind(None)         -> "localhost"
    resolve_bind("")           -> "localhost"
    resolve_bind(False)        -> "localhost"
    resolve_bind(8080)         -> "localhost"
    resolve_bind("127.0.0.1")  -> "127.0.0.1"
"""

from typing import Any


ANY_INTERFACE = "0.0.0.0"
DEFAULT_BIND = "localhost"

_ANY_INTERFACE_STRINGS = ("0.0.0.0", "0")


def resolve_bind(value: Any) -> str:
    """
    Resolve a configured bind value to a host string. Never raises.

    bool is checked before int on purpose: True and False are ints in
    Python, and False must not count as the integer 0.
    """
    if value is True:
        return ANY_INTERFACE
    if isinstance(value, bool):
        return DEFAULT_BIND
    if type(value) is int and value == 0:
        return ANY_INTERFACE
    if isinstance(value, str):
        if value in _ANY_INTERFACE_STRINGS:
            return ANY_INTERFACE
        return value or DEFAULT_BIND
    return DEFAULT_BIND
