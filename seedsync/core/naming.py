"""
Naming strategies used to map seed file names to database tables and columns.
"""

import re
from typing import Callable, Dict

NamingStrategy = Callable[[str], str]

_SEPARATORS = re.compile(r"[\s\-_.]+")
_LOWER_UPPER = re.compile(r"([a-z\d])([A-Z])")
_ACRONYM = re.compile(r"([A-Z]+)([A-Z][a-z\d]+)")


def as_is(name: str) -> str:
    return name


def snake_case(name: str) -> str:
    """
    Convert a name to snake_case.

    ``TableA`` -> ``table_a``, ``tableARef`` -> ``table_a_ref``,
    ``HTTPServer`` -> ``http_server``. Names already in snake_case are
    returned unchanged.
    """
    spaced = _SEPARATORS.sub(" ", name)
    spaced = _LOWER_UPPER.sub(r"\1 \2", spaced)
    spaced = _ACRONYM.sub(r"\1 \2", spaced)
    return "_".join(spaced.lower().split())


NAMING_STRATEGIES: Dict[str, NamingStrategy] = {
    "AsIs": as_is,
    "SnakeCase": snake_case,
}
