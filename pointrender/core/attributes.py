from __future__ import annotations
from typing import Any, Dict, Iterable, Mapping, Set
import numpy as np
from .errors import ConfigurationError

# name -> number of components
ATTRIBUTE_WIDTHS: Dict[str, int] = {
    "diffuse_color": 3,
    "specular_color": 3,
    "shininess": 1,
    "normal": 3,
    "emit_color": 3,
    "ambient_color": 3,
}
REQUIRED_ATTRIBUTES: Set[str] = {"diffuse_color", "specular_color", "shininess", "normal"}
# constant per surface, added once after the light loop
CONSTANT_ATTRIBUTES: Set[str] = {"emit_color", "ambient_color"}


def check_attribute_name(name: str) -> None:
    if name not in ATTRIBUTE_WIDTHS:
        known = ", ".join(sorted(ATTRIBUTE_WIDTHS))
        raise ConfigurationError(f"Unknown surface attribute '{name}' (known: {known}).")


class AttributeTable:
    """Per-corner attribute values of one primitive.

    Every attribute is stored as an ``(n_corners, width)`` array so that a
    parametric lookup reduces to ``weights @ table``. Values may be given either
    as one constant (broadcast to all corners) or one value per corner.
    The schema is validated once here; lookups never re-check shapes.
    """

    def __init__(self, values: Mapping[str, Any], n_corners: int, primitive_id: int) -> None:
        self.primitive_id = int(primitive_id)
        self.n_corners = int(n_corners)
        self._tables: Dict[str, np.ndarray] = {}

        for name in values:
            if name not in ATTRIBUTE_WIDTHS:
                raise ConfigurationError(
                    f"Primitive {self.primitive_id}: unknown attribute '{name}'."
                )
        missing = REQUIRED_ATTRIBUTES - set(values)
        if missing:
            raise ConfigurationError(
                f"Primitive {self.primitive_id}: missing required attributes {sorted(missing)}."
            )

        for name, value in values.items():
            if value is None:
                continue
            self._tables[name] = self._coerce(name, value)

        shininess = self._tables["shininess"]
        if not np.all(np.isfinite(shininess)):
            raise ConfigurationError(f"Primitive {self.primitive_id}: shininess must be finite.")
        if np.any(shininess < 0.0):
            raise ConfigurationError(f"Primitive {self.primitive_id}: shininess must be >= 0.")

    def _coerce(self, name: str, value: Any) -> np.ndarray:
        width = ATTRIBUTE_WIDTHS[name]
        n = self.n_corners
        arr = np.asarray(value, dtype=np.float64)

        if width == 1:
            if arr.ndim == 0 or arr.shape == (1,):
                table = np.full((n, 1), float(arr.reshape(-1)[0]))
            elif arr.shape == (n,) or arr.shape == (n, 1):
                table = arr.reshape(n, 1)
            else:
                raise ConfigurationError(
                    f"Primitive {self.primitive_id}: attribute '{name}' has shape {arr.shape}, "
                    f"expected a scalar or {n} values."
                )
        else:
            if arr.shape == (width,):
                table = np.tile(arr, (n, 1))
            elif arr.shape == (n, width) and name not in CONSTANT_ATTRIBUTES:
                table = arr
            else:
                expected = f"({width},)" if name in CONSTANT_ATTRIBUTES else f"({width},) or ({n}, {width})"
                raise ConfigurationError(
                    f"Primitive {self.primitive_id}: attribute '{name}' has shape {arr.shape}, "
                    f"expected {expected}."
                )

        table = np.array(table, dtype=np.float64, copy=True)
        table.flags.writeable = False
        return table

    @property
    def names(self) -> Iterable[str]:
        return tuple(self._tables)

    def has(self, name: str) -> bool:
        return name in self._tables

    def table(self, name: str) -> np.ndarray:
        check_attribute_name(name)
        return self._tables[name]

    def interpolate(self, name: str, weights: np.ndarray) -> np.ndarray | float:
        check_attribute_name(name)
        width = ATTRIBUTE_WIDTHS[name]
        table = self._tables.get(name)
        if table is None:
            # optional attribute not defined on this surface
            return 0.0 if width == 1 else np.zeros(width, dtype=np.float64)
        value = np.asarray(weights, dtype=np.float64) @ table
        if width == 1:
            return float(value[0])
        return value
