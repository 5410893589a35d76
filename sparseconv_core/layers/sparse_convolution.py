"""Sparsely-connected convolution layer descriptor.

Unlike a dense convolution, each output feature map only sees a subset of the
input feature maps. The descriptor holds structural parameters only:
- window sizes and zero padding per spatial dimension
- feature map counts and the total number of feature map connections

Weights and connectivity are produced by ``randomize_data`` from a
caller-owned generator and are owned by the caller afterwards.
"""

import dataclasses
import logging
import math
import operator
import uuid
from dataclasses import dataclass
from typing import BinaryIO, List, Sequence, Set, Tuple

import torch

from ..errors import ConfigMismatchError, CorruptStreamError, GeometryError, ValidationError
from .binary_io import read_int32s, write_int32s
from .connectivity import ConnectivityGraph, generate_sparse_connectivity
from .flops import LayerFlops, count_sparse_convolution_flops
from .initialization import LayerData, initialize_sparse_weights
from .shapes import UNKNOWN, LayerConfiguration, LayerConfigurationSpecific, Region

logger = logging.getLogger(__name__)

# Current layout, with zero padding
LAYER_GUID = uuid.UUID("228c72ef-b260-493c-aefd-24a13d455696")
# Legacy layout, no padding fields
LAYER_GUID_V1 = uuid.UUID("359b361c-61e7-4e52-89e6-e722b433f95c")


def _as_int_tuple(name: str, values: Sequence[int]) -> Tuple[int, ...]:
    result = []
    for i, v in enumerate(values):
        try:
            result.append(operator.index(v))
        except TypeError:
            raise ValidationError(
                f"{name} value {v!r} of dimension ({i}) is not an integer"
            ) from None
    return tuple(result)


@dataclass(frozen=True)
class SparseConvolutionLayer:
    """Descriptor of a convolution with sparse feature map connectivity.

    Args:
        window_sizes: Window size per spatial dimension (all positive)
        input_feature_map_count: Number of input feature maps
        output_feature_map_count: Number of output feature maps
        feature_map_connection_count: Number of (input, output) feature map
            pairs that are connected, in [max(in, out), in * out]
        left_zero_padding: Padding before each dimension, each < window size.
            Empty means no padding.
        right_zero_padding: Padding after each dimension, each < window size.
            Empty means no padding.

    Raises:
        ValidationError: If any of the constraints above is violated

    Example:
        >>> layer = SparseConvolutionLayer((3, 3), 4, 2, 6)
        >>> layer.get_output_shape(LayerConfigurationSpecific(4, (5, 5)))
        LayerConfigurationSpecific(feature_map_count=2, dimension_sizes=(3, 3))
    """

    window_sizes: Tuple[int, ...]
    input_feature_map_count: int
    output_feature_map_count: int
    feature_map_connection_count: int
    left_zero_padding: Tuple[int, ...] = ()
    right_zero_padding: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        window_sizes = _as_int_tuple("Window size", self.window_sizes)
        no_padding = (0,) * len(window_sizes)
        left = _as_int_tuple("Left zero padding", self.left_zero_padding) or no_padding
        right = _as_int_tuple("Right zero padding", self.right_zero_padding) or no_padding
        object.__setattr__(self, "window_sizes", window_sizes)
        object.__setattr__(self, "left_zero_padding", left)
        object.__setattr__(self, "right_zero_padding", right)
        self._check_consistency()

    @classmethod
    def from_sparsity_ratio(
        cls,
        window_sizes: Sequence[int],
        input_feature_map_count: int,
        output_feature_map_count: int,
        feature_map_connection_sparsity_ratio: float,
        left_zero_padding: Sequence[int] = (),
        right_zero_padding: Sequence[int] = (),
    ) -> "SparseConvolutionLayer":
        """Build a layer keeping a fraction of the dense connections.

        The connection count is ``int(in * out * ratio)``, truncated.
        """
        connection_count = int(
            input_feature_map_count * output_feature_map_count * feature_map_connection_sparsity_ratio
        )
        return cls(
            window_sizes=tuple(window_sizes),
            input_feature_map_count=input_feature_map_count,
            output_feature_map_count=output_feature_map_count,
            feature_map_connection_count=connection_count,
            left_zero_padding=tuple(left_zero_padding),
            right_zero_padding=tuple(right_zero_padding),
        )

    def _check_consistency(self) -> None:
        if len(self.window_sizes) == 0:
            raise ValidationError("window sizes for sparse convolution layer may not be empty")
        for i, size in enumerate(self.window_sizes):
            if size <= 0:
                raise ValidationError(
                    f"window dimension {i} for sparse convolution layer must be positive, got {size}"
                )

        if self.input_feature_map_count <= 0:
            raise ValidationError(
                f"input_feature_map_count must be positive, got {self.input_feature_map_count}"
            )
        if self.output_feature_map_count <= 0:
            raise ValidationError(
                f"output_feature_map_count must be positive, got {self.output_feature_map_count}"
            )

        count = self.feature_map_connection_count
        if count < self.input_feature_map_count:
            raise ValidationError(
                f"feature_map_connection_count ({count}) may not be smaller than "
                f"input_feature_map_count ({self.input_feature_map_count})"
            )
        if count < self.output_feature_map_count:
            raise ValidationError(
                f"feature_map_connection_count ({count}) may not be smaller than "
                f"output_feature_map_count ({self.output_feature_map_count})"
            )
        dense_count = self.input_feature_map_count * self.output_feature_map_count
        if count > dense_count:
            raise ValidationError(
                f"feature_map_connection_count ({count}) may not be larger than "
                f"in dense case ({dense_count})"
            )

        for name, padding in (
            ("left", self.left_zero_padding),
            ("right", self.right_zero_padding),
        ):
            if len(padding) != len(self.window_sizes):
                raise ValidationError(
                    f"Invalid dimension count {len(padding)} for {name} zero padding, "
                    f"expected {len(self.window_sizes)}"
                )
            for i, (pad, window) in enumerate(zip(padding, self.window_sizes)):
                if pad < 0:
                    raise ValidationError(
                        f"{name} zero padding {pad} of dimension ({i}) must be non-negative"
                    )
                if pad >= window:
                    raise ValidationError(
                        f"{name} zero padding {pad} of dimension ({i}) is greater or equal "
                        f"than layer window size ({window})"
                    )

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def layer_guid(self) -> uuid.UUID:
        return LAYER_GUID

    @property
    def dimension_count(self) -> int:
        return len(self.window_sizes)

    @property
    def window_volume(self) -> int:
        """Number of spatial positions in one window."""
        return math.prod(self.window_sizes)

    @property
    def weight_count(self) -> int:
        return self.feature_map_connection_count * self.window_volume

    def clone(self) -> "SparseConvolutionLayer":
        return dataclasses.replace(self)

    def get_data_config(self) -> List[int]:
        """Element counts of the float data parts: [weights, biases]."""
        return [self.weight_count, self.output_feature_map_count]

    def get_data_custom_config(self) -> List[int]:
        """Element counts of the integer data parts: [columns, row offsets]."""
        return [self.feature_map_connection_count, self.output_feature_map_count + 1]

    def get_weight_decay_part_ids(self) -> Set[int]:
        """Data parts subject to weight decay (weights only, not biases)."""
        return {0}

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def get_layer_configuration(self, input_configuration: LayerConfiguration) -> LayerConfiguration:
        """Shape-agnostic output description; unknown input fields are not checked."""
        if (
            input_configuration.is_feature_map_count_known
            and input_configuration.feature_map_count != self.input_feature_map_count
        ):
            raise ConfigMismatchError(
                f"Feature map count in layer ({self.input_feature_map_count}) and "
                f"input configuration ({input_configuration.feature_map_count}) don't match"
            )
        if (
            input_configuration.is_dimension_count_known
            and input_configuration.dimension_count != self.dimension_count
        ):
            raise ConfigMismatchError(
                f"Dimension count in layer ({self.dimension_count}) and "
                f"input configuration ({input_configuration.dimension_count}) don't match"
            )
        return LayerConfiguration(self.output_feature_map_count, self.dimension_count)

    def get_output_shape(self, input_shape: LayerConfigurationSpecific) -> LayerConfigurationSpecific:
        """Output shape for a concrete input shape.

        Raises:
            ConfigMismatchError: If feature map or dimension counts differ
            GeometryError: If a padded input dimension is smaller than the window
        """
        if (
            input_shape.feature_map_count != UNKNOWN
            and input_shape.feature_map_count != self.input_feature_map_count
        ):
            raise ConfigMismatchError(
                f"Feature map count in layer ({self.input_feature_map_count}) and "
                f"input configuration ({input_shape.feature_map_count}) don't match"
            )
        if input_shape.dimension_count != self.dimension_count:
            raise ConfigMismatchError(
                f"Dimension count in layer ({self.dimension_count}) and "
                f"input configuration ({input_shape.dimension_count}) don't match"
            )

        output_sizes = []
        for i, window in enumerate(self.window_sizes):
            total = input_shape.dimension_sizes[i] + self.left_zero_padding[i] + self.right_zero_padding[i]
            if total < window:
                raise GeometryError(
                    f"Too small total dimension size (with padding) {total} of dimension ({i}) "
                    f"is smaller than layer window size ({window})"
                )
            output_sizes.append(total - window + 1)

        return LayerConfigurationSpecific(self.output_feature_map_count, tuple(output_sizes))

    def get_input_region(self, output_region: Region) -> List[Tuple[int, int]]:
        """Input (start, end) per dimension needed to compute ``output_region``."""
        if len(output_region) != self.dimension_count:
            raise ConfigMismatchError(
                f"Dimension count in layer ({self.dimension_count}) and "
                f"output borders ({len(output_region)}) don't match"
            )
        return [
            (max(0, start - left), end + window - 1 - left)
            for (start, end), window, left in zip(
                output_region, self.window_sizes, self.left_zero_padding
            )
        ]

    # ------------------------------------------------------------------
    # Randomization
    # ------------------------------------------------------------------

    def randomize_connectivity(self, generator: torch.Generator) -> ConnectivityGraph:
        return generate_sparse_connectivity(
            self.input_feature_map_count,
            self.output_feature_map_count,
            self.feature_map_connection_count,
            generator,
        )

    def randomize_weights(
        self,
        graph: ConnectivityGraph,
        generator: torch.Generator,
        dtype: torch.dtype = torch.float32,
    ) -> LayerData:
        if graph.output_feature_map_count != self.output_feature_map_count:
            raise ConfigMismatchError(
                f"Connectivity has {graph.output_feature_map_count} output feature maps, "
                f"layer has {self.output_feature_map_count}"
            )
        return initialize_sparse_weights(self.window_sizes, graph, generator, dtype=dtype)

    def randomize_data(
        self,
        generator: torch.Generator,
        dtype: torch.dtype = torch.float32,
    ) -> Tuple[LayerData, ConnectivityGraph]:
        """Generate connectivity, then weights conditioned on it.

        Args:
            generator: Caller-owned RNG; seeding it makes the result reproducible
            dtype: Floating point dtype of weights and biases

        Returns:
            Tuple of (layer data, connectivity graph)
        """
        graph = self.randomize_connectivity(generator)
        data = self.randomize_weights(graph, generator, dtype=dtype)
        return data, graph

    # ------------------------------------------------------------------
    # Cost
    # ------------------------------------------------------------------

    def estimate_flops(self, input_shape: LayerConfigurationSpecific) -> LayerFlops:
        neuron_count = self.get_output_shape(input_shape).neuron_count_per_feature_map
        return count_sparse_convolution_flops(
            neuron_count, self.feature_map_connection_count, self.window_volume
        )

    def get_forward_flops(self, input_shape: LayerConfigurationSpecific) -> float:
        return self.estimate_flops(input_shape).forward

    def get_backward_flops(self, input_shape: LayerConfigurationSpecific) -> float:
        return self.estimate_flops(input_shape).backward

    def get_weights_update_flops(self, input_shape: LayerConfigurationSpecific) -> float:
        return self.estimate_flops(input_shape).weights_update

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def write(self, stream: BinaryIO) -> None:
        """Write structural parameters in the current layout (no tag)."""
        write_int32s(
            stream,
            (
                self.input_feature_map_count,
                self.output_feature_map_count,
                self.feature_map_connection_count,
                self.dimension_count,
            ),
        )
        write_int32s(stream, self.window_sizes)
        write_int32s(stream, self.left_zero_padding)
        write_int32s(stream, self.right_zero_padding)

    @classmethod
    def read(cls, stream: BinaryIO, layer_guid: uuid.UUID = LAYER_GUID) -> "SparseConvolutionLayer":
        """Read a layer body written under ``layer_guid``.

        Legacy (V1) bodies carry no padding; padding is then all zeros.

        Raises:
            CorruptStreamError: On truncated data or an unknown tag
            ValidationError: If the decoded parameters are inconsistent
        """
        if layer_guid not in (LAYER_GUID, LAYER_GUID_V1):
            raise CorruptStreamError(f"Unknown sparse convolution layer tag {layer_guid}")

        input_count, output_count, connection_count, dimension_count = read_int32s(stream, 4)
        if dimension_count < 0:
            raise CorruptStreamError(f"Negative dimension count {dimension_count} in stream")
        window_sizes = read_int32s(stream, dimension_count)

        if layer_guid == LAYER_GUID_V1:
            logger.debug("Reading legacy sparse convolution layer, padding defaults to zero")
            left = [0] * dimension_count
            right = [0] * dimension_count
        else:
            left = read_int32s(stream, dimension_count)
            right = read_int32s(stream, dimension_count)

        return cls(
            window_sizes=tuple(window_sizes),
            input_feature_map_count=input_count,
            output_feature_map_count=output_count,
            feature_map_connection_count=connection_count,
            left_zero_padding=tuple(left),
            right_zero_padding=tuple(right),
        )
