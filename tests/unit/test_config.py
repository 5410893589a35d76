"""Tests for SparseConvolutionConfig.

Tests:
    - Validation of connection count vs. sparsity ratio
    - from_cfg with dicts and attribute objects
    - build() producing a validated layer
"""

from types import SimpleNamespace

import pytest
import torch

from sparseconv_core.config import SparseConvolutionConfig
from sparseconv_core.errors import ValidationError
from sparseconv_core.layers.sparse_convolution import SparseConvolutionLayer


class TestConfigValidation:
    """Test validation of configuration fields."""

    def test_valid_config_with_count(self):
        config = SparseConvolutionConfig(
            window_sizes=[3, 3],
            input_feature_map_count=4,
            output_feature_map_count=2,
            feature_map_connection_count=6,
        )
        config.validate()  # Should not raise

    def test_valid_config_with_ratio(self):
        config = SparseConvolutionConfig(
            window_sizes=[3, 3],
            input_feature_map_count=16,
            output_feature_map_count=32,
            feature_map_connection_sparsity_ratio=0.25,
        )
        config.validate()  # Should not raise
        assert config.resolved_connection_count == 128

    def test_neither_count_nor_ratio_fails(self):
        config = SparseConvolutionConfig(input_feature_map_count=4, output_feature_map_count=2)
        with pytest.raises(ValidationError, match="Exactly one"):
            config.validate()

    def test_both_count_and_ratio_fail(self):
        config = SparseConvolutionConfig(
            input_feature_map_count=4,
            output_feature_map_count=2,
            feature_map_connection_count=6,
            feature_map_connection_sparsity_ratio=0.5,
        )
        with pytest.raises(ValidationError, match="Exactly one"):
            config.validate()

    def test_build_rejects_both_count_and_ratio(self):
        config = SparseConvolutionConfig(
            input_feature_map_count=4,
            output_feature_map_count=2,
            feature_map_connection_count=6,
            feature_map_connection_sparsity_ratio=0.5,
        )
        with pytest.raises(ValidationError, match="Exactly one"):
            config.build()

    def test_build_rejects_ratio_out_of_range(self):
        config = SparseConvolutionConfig(
            input_feature_map_count=4,
            output_feature_map_count=2,
            feature_map_connection_sparsity_ratio=1.5,
        )
        with pytest.raises(ValidationError, match="sparsity_ratio"):
            config.build()

    @pytest.mark.parametrize("ratio", [0.0, -0.5, 1.5])
    def test_ratio_out_of_range_fails(self, ratio):
        config = SparseConvolutionConfig(
            input_feature_map_count=4,
            output_feature_map_count=2,
            feature_map_connection_sparsity_ratio=ratio,
        )
        with pytest.raises(ValidationError, match="sparsity_ratio.*\\(0, 1\\]"):
            config.validate()

    def test_ratio_too_small_for_coverage_fails(self):
        """Resolved count below max(in, out) is rejected by the layer."""
        config = SparseConvolutionConfig(
            input_feature_map_count=10,
            output_feature_map_count=10,
            feature_map_connection_sparsity_ratio=0.05,
        )
        with pytest.raises(ValidationError, match="may not be smaller"):
            config.validate()

    def test_layer_invariants_are_checked(self):
        config = SparseConvolutionConfig(
            window_sizes=[3, 3],
            input_feature_map_count=4,
            output_feature_map_count=2,
            feature_map_connection_count=6,
            left_zero_padding=[3, 0],
        )
        with pytest.raises(ValidationError, match="left zero padding"):
            config.validate()

    def test_resolved_count_without_either_fails(self):
        config = SparseConvolutionConfig()
        with pytest.raises(ValidationError):
            config.resolved_connection_count


class TestConfigConversion:
    """Test from_cfg / to_dict / build."""

    def test_from_dict_ignores_unknown_keys(self):
        config = SparseConvolutionConfig.from_cfg(
            {
                "window_sizes": [5],
                "input_feature_map_count": 3,
                "output_feature_map_count": 3,
                "feature_map_connection_count": 4,
                "learning_rate": 0.1,
            }
        )
        assert config.window_sizes == [5]
        assert config.feature_map_connection_count == 4

    def test_from_object(self):
        cfg = SimpleNamespace(
            window_sizes=[3],
            input_feature_map_count=2,
            output_feature_map_count=2,
            feature_map_connection_count=3,
            seed=11,
        )
        config = SparseConvolutionConfig.from_cfg(cfg)
        assert config.seed == 11
        assert config.feature_map_connection_count == 3

    def test_to_dict_roundtrip(self):
        config = SparseConvolutionConfig(
            window_sizes=[3, 3],
            input_feature_map_count=4,
            output_feature_map_count=2,
            feature_map_connection_count=6,
            left_zero_padding=[1, 1],
            right_zero_padding=[1, 1],
        )
        assert SparseConvolutionConfig.from_cfg(config.to_dict()) == config

    def test_build(self):
        config = SparseConvolutionConfig(
            window_sizes=[3, 3],
            input_feature_map_count=4,
            output_feature_map_count=2,
            feature_map_connection_count=6,
        )
        layer = config.build()
        assert isinstance(layer, SparseConvolutionLayer)
        assert layer == SparseConvolutionLayer((3, 3), 4, 2, 6)

    def test_make_generator_is_seeded(self):
        config = SparseConvolutionConfig(seed=5)
        a = torch.rand(4, generator=config.make_generator())
        b = torch.rand(4, generator=config.make_generator())
        assert torch.equal(a, b)

    def test_repr(self):
        config = SparseConvolutionConfig(
            input_feature_map_count=4,
            output_feature_map_count=2,
            feature_map_connection_sparsity_ratio=0.75,
        )
        text = repr(config)
        assert text.startswith("SparseConvolutionConfig(")
        assert "feature_map_connection_sparsity_ratio=0.75" in text
        assert "zero_padding" not in text
