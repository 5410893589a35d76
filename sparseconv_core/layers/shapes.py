"""Tensor shape descriptions passed between layers.

Two flavours exist:
- LayerConfiguration: shape-agnostic, used while building a network schema.
  Either field may be ``UNKNOWN`` (-1).
- LayerConfigurationSpecific: a concrete shape with known spatial sizes.
"""

import math
from dataclasses import dataclass, field
from typing import Sequence, Tuple


UNKNOWN = -1

# (start, end) pair per spatial dimension, both inclusive
Region = Sequence[Tuple[int, int]]


@dataclass(frozen=True)
class LayerConfiguration:
    """Feature map count and dimension count, each possibly UNKNOWN."""

    feature_map_count: int = UNKNOWN
    dimension_count: int = UNKNOWN

    @property
    def is_feature_map_count_known(self) -> bool:
        return self.feature_map_count >= 0

    @property
    def is_dimension_count_known(self) -> bool:
        return self.dimension_count >= 0


@dataclass(frozen=True)
class LayerConfigurationSpecific:
    """Concrete tensor shape: feature maps x spatial dimensions.

    Args:
        feature_map_count: Number of channels, or UNKNOWN
        dimension_sizes: Spatial sizes, one per dimension

    Example:
        >>> shape = LayerConfigurationSpecific(4, (5, 5))
        >>> shape.neuron_count
        100
    """

    feature_map_count: int
    dimension_sizes: Tuple[int, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dimension_sizes", tuple(int(s) for s in self.dimension_sizes))

    @property
    def dimension_count(self) -> int:
        return len(self.dimension_sizes)

    @property
    def neuron_count_per_feature_map(self) -> int:
        """Product of spatial sizes (1 for a 0-dimensional shape)."""
        return math.prod(self.dimension_sizes)

    @property
    def neuron_count(self) -> int:
        return self.neuron_count_per_feature_map * self.feature_map_count

    def to_layer_configuration(self) -> LayerConfiguration:
        return LayerConfiguration(self.feature_map_count, self.dimension_count)
