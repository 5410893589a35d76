"""
Sparse convolution layer configuration dataclass.

Holds the user-facing parameters of a sparse convolution layer. The
connection count can be given directly or as a fraction of the dense
connection count; ``build()`` resolves it and returns a validated
SparseConvolutionLayer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import torch

from .errors import ValidationError
from .layers.sparse_convolution import SparseConvolutionLayer


@dataclass
class SparseConvolutionConfig:
    """
    Configuration for a sparse convolution layer.

    Args:
        window_sizes: Window size per spatial dimension
        input_feature_map_count: Number of input feature maps
        output_feature_map_count: Number of output feature maps
        feature_map_connection_count: Exact number of feature map connections
        feature_map_connection_sparsity_ratio: Fraction of in * out connections
            to keep, used when feature_map_connection_count is None
        left_zero_padding: Padding before each dimension (empty = none)
        right_zero_padding: Padding after each dimension (empty = none)
        seed: Seed for the torch.Generator used by make_generator()

    Example:
        >>> config = SparseConvolutionConfig(
        ...     window_sizes=[3, 3],
        ...     input_feature_map_count=16,
        ...     output_feature_map_count=32,
        ...     feature_map_connection_sparsity_ratio=0.25,
        ... )
        >>> layer = config.build()
        >>> layer.feature_map_connection_count
        128
    """

    window_sizes: List[int] = field(default_factory=lambda: [3, 3])
    input_feature_map_count: int = 1
    output_feature_map_count: int = 1

    # Exactly one of these must be set
    feature_map_connection_count: Optional[int] = None
    feature_map_connection_sparsity_ratio: Optional[float] = None

    left_zero_padding: List[int] = field(default_factory=list)
    right_zero_padding: List[int] = field(default_factory=list)

    seed: int = 0

    @property
    def resolved_connection_count(self) -> int:
        """Connection count, computing it from the sparsity ratio if needed."""
        if self.feature_map_connection_count is not None:
            return self.feature_map_connection_count
        if self.feature_map_connection_sparsity_ratio is None:
            raise ValidationError(
                "Either feature_map_connection_count or "
                "feature_map_connection_sparsity_ratio must be set"
            )
        return int(
            self.input_feature_map_count
            * self.output_feature_map_count
            * self.feature_map_connection_sparsity_ratio
        )

    @classmethod
    def from_cfg(cls, cfg: Any) -> "SparseConvolutionConfig":
        """
        Create SparseConvolutionConfig from a dict or attribute object.

        Unknown keys are ignored.
        """
        if isinstance(cfg, dict):
            valid_fields = {k: v for k, v in cfg.items() if k in cls.__dataclass_fields__}
            return cls(**valid_fields)

        kwargs = {}
        for field_name in cls.__dataclass_fields__:
            if hasattr(cfg, field_name):
                kwargs[field_name] = getattr(cfg, field_name)

        return cls(**kwargs)

    def validate(self) -> None:
        """
        Validate configuration constraints.

        Checks the options that only exist at config level, then defers the
        layer invariants to SparseConvolutionLayer.

        Raises:
            ValidationError: If configuration is invalid
        """
        self.build()

    def _check_connection_options(self) -> None:
        has_count = self.feature_map_connection_count is not None
        has_ratio = self.feature_map_connection_sparsity_ratio is not None
        if has_count == has_ratio:
            raise ValidationError(
                "Exactly one of feature_map_connection_count and "
                "feature_map_connection_sparsity_ratio must be set"
            )

        if has_ratio and not 0.0 < self.feature_map_connection_sparsity_ratio <= 1.0:
            raise ValidationError(
                "feature_map_connection_sparsity_ratio must be in (0, 1], "
                f"got {self.feature_map_connection_sparsity_ratio}"
            )

    def build(self) -> SparseConvolutionLayer:
        """Build the validated layer descriptor.

        Raises:
            ValidationError: If configuration is invalid
        """
        self._check_connection_options()
        return SparseConvolutionLayer(
            window_sizes=tuple(self.window_sizes),
            input_feature_map_count=self.input_feature_map_count,
            output_feature_map_count=self.output_feature_map_count,
            feature_map_connection_count=self.resolved_connection_count,
            left_zero_padding=tuple(self.left_zero_padding),
            right_zero_padding=tuple(self.right_zero_padding),
        )

    def make_generator(self) -> torch.Generator:
        """Fresh CPU generator seeded with ``seed``."""
        return torch.Generator().manual_seed(self.seed)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }

    def __repr__(self) -> str:
        """Custom repr showing key parameters."""
        parts = [
            f"window_sizes={list(self.window_sizes)}",
            f"input_feature_map_count={self.input_feature_map_count}",
            f"output_feature_map_count={self.output_feature_map_count}",
        ]
        if self.feature_map_connection_count is not None:
            parts.append(f"feature_map_connection_count={self.feature_map_connection_count}")
        if self.feature_map_connection_sparsity_ratio is not None:
            parts.append(
                f"feature_map_connection_sparsity_ratio={self.feature_map_connection_sparsity_ratio}"
            )
        if any(self.left_zero_padding) or any(self.right_zero_padding):
            parts.append(f"left_zero_padding={list(self.left_zero_padding)}")
            parts.append(f"right_zero_padding={list(self.right_zero_padding)}")
        return f"SparseConvolutionConfig({', '.join(parts)})"
