"""
procmap/models/parameters.py
----------------------------
Ordered parameter set passed to a stored procedure.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Direction(str, Enum):
    """How a parameter is bound to the procedure call."""

    INPUT = "input"
    INPUT_OUTPUT = "input_output"


@dataclass
class Parameter:
    name: str
    value: Any
    direction: Direction = Direction.INPUT


class ParameterSet:
    """
    Ordered mapping of parameter name to value and direction.

    Output parameters (``INPUT_OUTPUT``) are filled back in by the storage
    session from the row the procedure returns, so ``get("Id")`` after a save
    yields the generated identifier.
    """

    def __init__(self) -> None:
        self._params: dict[str, Parameter] = {}

    def add(self, name: str, value: Any, direction: Direction = Direction.INPUT) -> None:
        """Add a parameter, replacing any previous one with the same name."""
        self._params[name] = Parameter(name, value, direction)

    def get(self, name: str, default: Any = None) -> Any:
        param = self._params.get(name)
        return param.value if param is not None else default

    def parameter(self, name: str) -> Optional[Parameter]:
        return self._params.get(name)

    def names(self) -> list[str]:
        return list(self._params)

    def output_names(self) -> list[str]:
        return [p.name for p in self._params.values() if p.direction is Direction.INPUT_OUTPUT]

    def as_dict(self) -> dict[str, Any]:
        """Plain ``name -> value`` dict, in declaration order."""
        return {name: p.value for name, p in self._params.items()}

    def capture(self, row: Mapping[str, Any]) -> None:
        """
        Copy output values from a returned row into the output parameters.

        Column names are matched exactly first, then case-insensitively.
        """
        lowered = {str(k).lower(): v for k, v in row.items()}
        for name in self.output_names():
            if name in row:
                self._params[name].value = row[name]
            elif name.lower() in lowered:
                self._params[name].value = lowered[name.lower()]

    def __contains__(self, name: object) -> bool:
        return name in self._params

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._params.values())

    def __len__(self) -> int:
        return len(self._params)

    def __repr__(self) -> str:
        return f"ParameterSet({self.as_dict()!r})"
