"""sparseconv_core: sparsely-connected convolution layers for training toolkits.

This package implements the structural side of a sparse convolution layer:
- Output geometry and input-region mapping from window/padding parameters
- Random feature map connectivity with exact edge counts (CSR form)
- Truncated-normal weight initialization scaled by realized fan-in
- Versioned binary serialization of layer parameters
- FLOP estimates for forward, backward and weight-update passes

Version: 0.1.0
License: MIT
"""

__version__ = "0.1.0"

# Import errors
from .errors import (
    SparseConvError,
    ValidationError,
    ConfigMismatchError,
    GeometryError,
    InternalInconsistencyError,
    CorruptStreamError,
    DataReaderError,
)

# Import config
from .config import SparseConvolutionConfig

# Import layers
from .layers.shapes import UNKNOWN, LayerConfiguration, LayerConfigurationSpecific
from .layers.connectivity import ConnectivityGraph, generate_sparse_connectivity
from .layers.initialization import LayerData, initialize_sparse_weights
from .layers.flops import LayerFlops, count_sparse_convolution_flops
from .layers.sparse_convolution import LAYER_GUID, LAYER_GUID_V1, SparseConvolutionLayer
from .layers.registry import LAYER_TYPES, save_layer, load_layer

# Import data helpers
from .data.host_buffer import HostLinearBuffer, pack_layer_data
from .data.reader import (
    FeatureMapDataStat,
    InputType,
    TensorDataReader,
    UnsupervisedDataReader,
    compute_feature_map_stats,
)

__all__ = [
    "__version__",
    # Errors
    "SparseConvError",
    "ValidationError",
    "ConfigMismatchError",
    "GeometryError",
    "InternalInconsistencyError",
    "CorruptStreamError",
    "DataReaderError",
    # Config
    "SparseConvolutionConfig",
    # Shapes
    "UNKNOWN",
    "LayerConfiguration",
    "LayerConfigurationSpecific",
    # Layers
    "ConnectivityGraph",
    "generate_sparse_connectivity",
    "LayerData",
    "initialize_sparse_weights",
    "LayerFlops",
    "count_sparse_convolution_flops",
    "LAYER_GUID",
    "LAYER_GUID_V1",
    "SparseConvolutionLayer",
    "LAYER_TYPES",
    "save_layer",
    "load_layer",
    # Data
    "HostLinearBuffer",
    "pack_layer_data",
    "FeatureMapDataStat",
    "InputType",
    "TensorDataReader",
    "UnsupervisedDataReader",
    "compute_feature_map_stats",
]
