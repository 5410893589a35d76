"""Weight initialization for sparse convolution layers.

Weights are drawn per output feature map from a normal distribution scaled by
the realized fan-in (window volume x connected inputs), truncated at three
standard deviations by rejection.
"""

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import torch
from torch import Tensor

from .connectivity import ConnectivityGraph

# Samples further than this many standard deviations from zero are redrawn
TRUNCATION_STDS = 3.0


@dataclass
class LayerData:
    """Weights and biases of a sparse convolution layer.

    Attributes:
        weights: Flat weights [connection_count * window_volume]. Output k owns
            a contiguous block of (connected inputs of k) x window_volume
            values, in CSR order.
        biases: One bias per output feature map [out]
        window_sizes: Spatial window sizes used to reshape blocks
    """

    weights: Tensor
    biases: Tensor
    window_sizes: Tuple[int, ...]

    @property
    def window_volume(self) -> int:
        return math.prod(self.window_sizes)

    def weight_block(self, graph: ConnectivityGraph, output_feature_map_id: int) -> Tensor:
        """View of output k's weights shaped [n_k, *window_sizes]."""
        start = int(graph.row_offsets[output_feature_map_id]) * self.window_volume
        end = int(graph.row_offsets[output_feature_map_id + 1]) * self.window_volume
        return self.weights[start:end].view(-1, *self.window_sizes)


def truncated_normal(
    count: int,
    std: float,
    generator: torch.Generator,
    max_abs: float,
    dtype: torch.dtype = torch.float32,
) -> Tensor:
    """Draw ``count`` samples from N(0, std), redrawing any beyond ``max_abs``.

    The redraw loop has no cap; with max_abs = 3 std about 0.3% of samples
    are rejected per round.
    """
    values = torch.randn(count, generator=generator, dtype=dtype) * std
    rejected = values.abs() > max_abs
    while rejected.any():
        values[rejected] = (
            torch.randn(int(rejected.sum()), generator=generator, dtype=dtype) * std
        )
        rejected = values.abs() > max_abs
    return values


def initialize_sparse_weights(
    window_sizes: Sequence[int],
    graph: ConnectivityGraph,
    generator: torch.Generator,
    dtype: torch.dtype = torch.float32,
) -> LayerData:
    """Sample weights for every output feature map of ``graph``.

    Args:
        window_sizes: Spatial window sizes of the layer
        graph: Connectivity produced by generate_sparse_connectivity
        generator: Caller-owned RNG
        dtype: Floating point dtype of the returned tensors

    Returns:
        LayerData with truncated-normal weights and zero biases
    """
    window_sizes = tuple(int(w) for w in window_sizes)
    window_volume = math.prod(window_sizes)

    weights = torch.zeros(graph.connection_count * window_volume, dtype=dtype)
    offset = 0
    for input_count in graph.input_counts().tolist():
        fan_in = window_volume * input_count
        if fan_in > 0:
            std = 1.0 / math.sqrt(fan_in)
            weights[offset : offset + fan_in] = truncated_normal(
                fan_in, std, generator, TRUNCATION_STDS * std, dtype=dtype
            )
            offset += fan_in

    biases = torch.zeros(graph.output_feature_map_count, dtype=dtype)
    return LayerData(weights=weights, biases=biases, window_sizes=window_sizes)
