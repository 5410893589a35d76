"""Sparse convolution layer descriptor and its helpers.

Key components:
- SparseConvolutionLayer: validated descriptor (geometry, cost, serialization)
- ConnectivityGraph: CSR input/output feature map connectivity
- generate_sparse_connectivity: round-robin random graph construction
- initialize_sparse_weights: truncated-normal weights by realized fan-in
- save_layer / load_layer: tagged binary I/O
"""

from .connectivity import ConnectivityGraph, generate_sparse_connectivity
from .flops import LayerFlops, count_sparse_convolution_flops
from .initialization import LayerData, initialize_sparse_weights, truncated_normal
from .registry import LAYER_TYPES, load_layer, save_layer
from .shapes import UNKNOWN, LayerConfiguration, LayerConfigurationSpecific
from .sparse_convolution import LAYER_GUID, LAYER_GUID_V1, SparseConvolutionLayer

__all__ = [
    # Shapes
    "UNKNOWN",
    "LayerConfiguration",
    "LayerConfigurationSpecific",
    # Connectivity
    "ConnectivityGraph",
    "generate_sparse_connectivity",
    # Weights
    "LayerData",
    "initialize_sparse_weights",
    "truncated_normal",
    # Cost
    "LayerFlops",
    "count_sparse_convolution_flops",
    # Layer
    "LAYER_GUID",
    "LAYER_GUID_V1",
    "SparseConvolutionLayer",
    # Tagged I/O
    "LAYER_TYPES",
    "save_layer",
    "load_layer",
]
