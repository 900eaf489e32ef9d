"""
BindingSet Enumerator

Expands a declarative parameter space into a concrete, ordered sequence of
bindings. Two policies are supported:

- Full Cartesian product across all declared dimensions, in declared
  dimension order and declared value order (first dimension varies slowest)
- Explicit enumeration, where the caller supplies the exact bindings and
  each one is checked to cover every declared dimension exactly once

Enumeration is a pure function of its input, so re-running it with the same
declarations always yields the same order.
"""

import itertools
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from batchrender.errors import ConfigurationError


@dataclass(frozen=True)
class BindingDimension:
    """A named axis of variation with an ordered set of discrete values.

    Attributes:
        name: Dimension name (e.g., "unit", "period")
        values: Ordered, unique values
    """
    name: str
    values: Tuple[str, ...]

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Dimension name must not be empty", field_name="dimensions")
        # Values are treated as strings everywhere downstream
        object.__setattr__(self, "values", tuple(str(v) for v in self.values))
        seen = set()
        for value in self.values:
            if value in seen:
                raise ConfigurationError(
                    f"Dimension '{self.name}' declares value '{value}' more than once",
                    field_name="dimensions",
                )
            seen.add(value)


@dataclass(frozen=True)
class Binding:
    """One concrete assignment of a value to every declared dimension.

    Equality and hashing consider only the per-dimension assignments; the
    fixed parameters shared by all bindings of a run are carried along but
    do not distinguish bindings.

    Attributes:
        assignments: Ordered (dimension, value) pairs
        fixed: Non-varying parameters shared by all bindings
    """
    assignments: Tuple[Tuple[str, str], ...]
    fixed: Tuple[Tuple[str, Any], ...] = field(default=(), compare=False)

    @property
    def dimension_names(self) -> List[str]:
        return [name for name, _ in self.assignments]

    @property
    def values(self) -> List[str]:
        return [value for _, value in self.assignments]

    def value_of(self, dimension: str) -> str:
        for name, value in self.assignments:
            if name == dimension:
                return value
        raise KeyError(dimension)

    def as_dict(self) -> Dict[str, str]:
        """Per-dimension assignments as an ordered mapping."""
        return dict(self.assignments)

    def parameters(self) -> Dict[str, Any]:
        """Full parameter context handed to the rendering engine.

        Fixed parameters come first; dimension values win on name clashes.
        """
        params: Dict[str, Any] = dict(self.fixed)
        params.update(self.assignments)
        return params

    def describe(self) -> str:
        return ", ".join(f"{name}={value}" for name, value in self.assignments)

    def __str__(self) -> str:
        return self.describe()


class BindingSet:
    """Ordered, restartable sequence of bindings for one run.

    Iteration is lazy for the product policy: each ``iter()`` call re-runs
    ``itertools.product`` over the declared dimensions, so large parameter
    spaces are never materialized unless the caller asks for it.
    """

    def __init__(
        self,
        dimensions: Sequence[BindingDimension],
        fixed: Optional[Mapping[str, Any]] = None,
        explicit: Optional[Sequence[Binding]] = None,
    ):
        self.dimensions: Tuple[BindingDimension, ...] = tuple(dimensions)
        self.fixed: Dict[str, Any] = dict(fixed or {})
        self._explicit = tuple(explicit) if explicit is not None else None

    @property
    def is_explicit(self) -> bool:
        return self._explicit is not None

    @property
    def dimension_names(self) -> List[str]:
        return [d.name for d in self.dimensions]

    def __iter__(self) -> Iterator[Binding]:
        if self._explicit is not None:
            return iter(self._explicit)
        return self._product()

    def _product(self) -> Iterator[Binding]:
        fixed = tuple(self.fixed.items())
        names = self.dimension_names
        for combo in itertools.product(*(d.values for d in self.dimensions)):
            yield Binding(assignments=tuple(zip(names, combo)), fixed=fixed)

    def __len__(self) -> int:
        if self._explicit is not None:
            return len(self._explicit)
        size = 1
        for dimension in self.dimensions:
            size *= len(dimension.values)
        return size

    def __repr__(self) -> str:
        policy = "explicit" if self.is_explicit else "product"
        return f"BindingSet({policy}, dimensions={self.dimension_names}, size={len(self)})"


DimensionSpec = Union[Mapping[str, Sequence[Any]], Sequence[BindingDimension]]
Assignment = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]


def _coerce_dimensions(dimensions: DimensionSpec) -> List[BindingDimension]:
    if isinstance(dimensions, Mapping):
        return [BindingDimension(name, tuple(values)) for name, values in dimensions.items()]
    return list(dimensions)


def enumerate_bindings(
    dimensions: DimensionSpec,
    fixed: Optional[Mapping[str, Any]] = None,
) -> BindingSet:
    """Build the full Cartesian-product BindingSet.

    Args:
        dimensions: Ordered mapping of dimension name to ordered values, or
            a sequence of BindingDimension
        fixed: Parameters shared by every binding

    Returns:
        BindingSet enumerating the product in declaration order

    Raises:
        ConfigurationError: If no dimensions are declared, a dimension has
            no values, or a dimension name repeats
    """
    dims = _coerce_dimensions(dimensions)
    _check_dimensions(dims)
    for dimension in dims:
        if not dimension.values:
            raise ConfigurationError(
                f"Dimension '{dimension.name}' has no values", field_name="dimensions"
            )
    return BindingSet(dims, fixed=fixed)


def explicit_bindings(
    dimension_names: Iterable[str],
    assignments: Sequence[Assignment],
    fixed: Optional[Mapping[str, Any]] = None,
) -> BindingSet:
    """Build a BindingSet from an explicit list of assignments.

    Each assignment must cover every declared dimension exactly once. An
    assignment given as a sequence of ``(name, value)`` pairs may repeat a
    dimension; that is rejected here rather than silently collapsed.

    Args:
        dimension_names: Declared dimension names, in order
        assignments: One mapping or pair-sequence per binding
        fixed: Parameters shared by every binding

    Returns:
        BindingSet preserving the supplied order

    Raises:
        ConfigurationError: On a missing, unknown or duplicate dimension, an
            empty assignment list, or the same binding listed twice
    """
    names = list(dimension_names)
    if not names:
        raise ConfigurationError("At least one dimension must be declared", field_name="dimensions")
    if len(set(names)) != len(names):
        raise ConfigurationError(f"Duplicate dimension names in {names}", field_name="dimensions")
    if not assignments:
        raise ConfigurationError("Explicit binding list is empty", field_name="bindings")

    fixed_items = tuple((fixed or {}).items())
    bindings: List[Binding] = []
    seen = set()
    for index, assignment in enumerate(assignments):
        pairs = list(assignment.items()) if isinstance(assignment, Mapping) else list(assignment)
        values: Dict[str, str] = {}
        for name, value in pairs:
            if name not in names:
                raise ConfigurationError(
                    f"Binding #{index} assigns undeclared dimension '{name}'",
                    field_name="bindings",
                )
            if name in values:
                raise ConfigurationError(
                    f"Binding #{index} assigns dimension '{name}' more than once",
                    field_name="bindings",
                )
            values[name] = str(value)
        missing = [n for n in names if n not in values]
        if missing:
            raise ConfigurationError(
                f"Binding #{index} is missing dimension(s): {', '.join(missing)}",
                field_name="bindings",
            )

        binding = Binding(assignments=tuple((n, values[n]) for n in names), fixed=fixed_items)
        if binding in seen:
            raise ConfigurationError(
                f"Binding #{index} ({binding.describe()}) is listed more than once",
                field_name="bindings",
            )
        seen.add(binding)
        bindings.append(binding)

    dims = [
        BindingDimension(n, tuple(dict.fromkeys(b.value_of(n) for b in bindings)))
        for n in names
    ]
    return BindingSet(dims, fixed=fixed, explicit=bindings)


def _check_dimensions(dimensions: List[BindingDimension]) -> None:
    if not dimensions:
        raise ConfigurationError("At least one dimension must be declared", field_name="dimensions")
    names = [d.name for d in dimensions]
    if len(set(names)) != len(names):
        raise ConfigurationError(f"Duplicate dimension names in {names}", field_name="dimensions")
