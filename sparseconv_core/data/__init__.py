"""Host buffers and unlabeled data readers consumed by layer code."""

from .host_buffer import HostLinearBuffer, pack_layer_data
from .reader import (
    FeatureMapDataStat,
    InputType,
    TensorDataReader,
    UnsupervisedDataReader,
    compute_feature_map_stats,
)

__all__ = [
    "HostLinearBuffer",
    "pack_layer_data",
    "FeatureMapDataStat",
    "InputType",
    "TensorDataReader",
    "UnsupervisedDataReader",
    "compute_feature_map_stats",
]
