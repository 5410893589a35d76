"""Closed-form FLOP estimates for sparse convolution.

Used by schedulers and reports only; nothing here affects numerics.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LayerFlops:
    """FLOPs for one sample through a layer.

    Attributes:
        forward: Forward propagation
        backward: Backward propagation of errors
        weights_update: Gradient accumulation for weights
    """

    forward: float
    backward: float
    weights_update: float

    @property
    def total(self) -> float:
        return self.forward + self.backward + self.weights_update


def count_sparse_convolution_flops(
    neuron_count: int,
    feature_map_connection_count: int,
    window_volume: int,
) -> LayerFlops:
    """FLOPs for a sparse convolution producing ``neuron_count`` positions.

    Each output position performs one multiply-add per connected weight.
    The forward count is one less per position than backward and weight
    update (the first product needs no addition).

    Example:
        >>> count_sparse_convolution_flops(18, 6, 9).forward
        1926.0
    """
    per_item_flops = feature_map_connection_count * window_volume * 2
    return LayerFlops(
        forward=float(neuron_count) * float(per_item_flops - 1),
        backward=float(neuron_count) * float(per_item_flops),
        weights_update=float(neuron_count) * float(per_item_flops),
    )
