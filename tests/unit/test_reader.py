"""Tests for unlabeled data readers and feature map statistics."""

import pytest
import torch

from sparseconv_core.data.reader import (
    InputType,
    TensorDataReader,
    compute_feature_map_stats,
)
from sparseconv_core.errors import DataReaderError
from sparseconv_core.layers.shapes import LayerConfigurationSpecific


class TestTensorDataReader:
    """Test the in-memory reader contract."""

    def test_metadata(self):
        reader = TensorDataReader(torch.zeros(5, 3, 4, 6))
        assert reader.entry_count == 5
        assert reader.input_configuration == LayerConfigurationSpecific(3, (4, 6))
        assert reader.input_type is InputType.FLOAT
        assert reader.input_neuron_elem_size == 4

    def test_byte_reader(self):
        reader = TensorDataReader(torch.zeros(2, 1, 3, dtype=torch.uint8))
        assert reader.input_type is InputType.BYTE
        assert reader.input_neuron_elem_size == 1

    def test_unsupported_dtype_fails(self):
        with pytest.raises(ValueError, match="dtype"):
            TensorDataReader(torch.zeros(2, 1, 3, dtype=torch.float64))

    def test_bad_shape_fails(self):
        with pytest.raises(ValueError, match="samples must be"):
            TensorDataReader(torch.zeros(5))

    def test_reads_until_exhausted_then_resets(self):
        samples = torch.arange(12, dtype=torch.float32).view(3, 2, 2)
        reader = TensorDataReader(samples)
        out = torch.empty(4)

        seen = []
        while reader.read(out):
            seen.append(out.clone())
        assert len(seen) == 3
        assert torch.equal(seen[2], samples[2].reshape(-1))
        assert reader.read(out) is False

        reader.next_epoch()
        assert reader.read(out) is True
        assert torch.equal(out, samples[0].reshape(-1))


class TestFeatureMapStats:
    """Test two-pass per-feature-map statistics."""

    def test_matches_torch_reference(self):
        generator = torch.Generator().manual_seed(0)
        samples = torch.randn(20, 3, 5, 5, generator=generator)
        samples[:, 1] = samples[:, 1] * 4.0 + 10.0

        stats = compute_feature_map_stats(TensorDataReader(samples))

        assert len(stats) == 3
        for fm, stat in enumerate(stats):
            values = samples[:, fm].reshape(-1).double()
            assert stat.min == pytest.approx(float(values.min()))
            assert stat.max == pytest.approx(float(values.max()))
            assert stat.average == pytest.approx(float(values.mean()), abs=1e-5)
            assert stat.std_dev == pytest.approx(float(values.var(correction=0).sqrt()), rel=1e-4)

    def test_constant_feature_map(self):
        samples = torch.full((4, 2, 3), 2.5)
        stats = compute_feature_map_stats(TensorDataReader(samples))

        for stat in stats:
            assert stat.min == 2.5
            assert stat.max == 2.5
            assert stat.average == 2.5
            assert stat.std_dev == 0.0

    def test_partially_consumed_reader_is_reset(self):
        samples = torch.tensor([[[0.0, 2.0]], [[4.0, 6.0]]])
        reader = TensorDataReader(samples)
        reader.read(torch.empty(2))

        stats = compute_feature_map_stats(reader)

        assert stats[0].average == pytest.approx(3.0)
        assert stats[0].std_dev == pytest.approx(5.0 ** 0.5)

    def test_byte_reader_fails(self):
        reader = TensorDataReader(torch.zeros(2, 1, 3, dtype=torch.uint8))
        with pytest.raises(DataReaderError, match="input data type byte"):
            compute_feature_map_stats(reader)

    def test_empty_reader_fails(self):
        reader = TensorDataReader(torch.zeros(0, 2, 3))
        with pytest.raises(DataReaderError, match="no entries"):
            compute_feature_map_stats(reader)
