"""Integration tests for the sparse convolution layer lifecycle.

Covers the path a training toolkit takes:
1. Build a layer from a config
2. Resolve its geometry against the data reader's input shape
3. Randomize connectivity and weights from a seeded generator
4. Persist the descriptor, reload it and check nothing changed
5. Hand layer arrays to host buffers and report costs
"""

import io

import pytest
import torch

from sparseconv_core import (
    LayerConfigurationSpecific,
    SparseConvolutionConfig,
    SparseConvolutionLayer,
    TensorDataReader,
    compute_feature_map_stats,
    load_layer,
    pack_layer_data,
    save_layer,
)


@pytest.fixture
def config():
    return SparseConvolutionConfig(
        window_sizes=[3, 3],
        input_feature_map_count=4,
        output_feature_map_count=2,
        feature_map_connection_count=6,
        seed=1234,
    )


class TestLayerLifecycle:
    """End-to-end flow from config to persisted layer."""

    def test_scenario(self, config):
        """5x5x4 input through a 3x3 layer with 6 of 8 connections."""
        layer = config.build()
        reader = TensorDataReader(torch.randn(3, 4, 5, 5, generator=torch.Generator().manual_seed(0)))

        output_shape = layer.get_output_shape(reader.input_configuration)
        assert output_shape == LayerConfigurationSpecific(2, (3, 3))

        data, graph = layer.randomize_data(config.make_generator())
        assert graph.validate() == (True, None)
        assert data.weights.numel() == 54
        assert data.biases.numel() == 2
        assert torch.equal(data.biases, torch.zeros(2))

        flops = layer.estimate_flops(reader.input_configuration)
        assert flops.forward == 9 * (6 * 9 * 2 - 1)

        stats = compute_feature_map_stats(reader)
        assert len(stats) == layer.input_feature_map_count

    def test_randomization_reproducible_from_seed(self, config):
        layer = config.build()

        data_a, graph_a = layer.randomize_data(config.make_generator())
        data_b, graph_b = layer.randomize_data(config.make_generator())

        assert torch.equal(graph_a.columns, graph_b.columns)
        assert torch.equal(graph_a.row_offsets, graph_b.row_offsets)
        assert torch.equal(data_a.weights, data_b.weights)

    def test_reloaded_layer_randomizes_identically(self, config):
        """A persisted descriptor plus the same seed reproduces the same data."""
        layer = config.build()
        stream = io.BytesIO()
        save_layer(stream, layer)
        stream.seek(0)
        restored = load_layer(stream)

        data_a, graph_a = layer.randomize_data(config.make_generator())
        data_b, graph_b = restored.randomize_data(config.make_generator())

        assert restored == layer
        assert torch.equal(graph_a.columns, graph_b.columns)
        assert torch.equal(data_a.weights, data_b.weights)

    def test_dense_connectivity_end_to_end(self):
        layer = SparseConvolutionLayer((2, 2), 3, 4, 12)
        data, graph = layer.randomize_data(torch.Generator().manual_seed(9))

        assert bool(graph.to_dense().all())
        bound = 3.0 / (4 * 3) ** 0.5
        assert float(data.weights.abs().max()) <= bound + 1e-6

    def test_padded_layer_packs_into_buffers(self):
        layer = SparseConvolutionLayer((3, 3, 3), 6, 6, 14, (1, 1, 1), (2, 2, 2))
        shape = LayerConfigurationSpecific(6, (4, 4, 4))
        assert layer.get_output_shape(shape).dimension_sizes == (5, 5, 5)

        data, graph = layer.randomize_data(torch.Generator().manual_seed(3))
        buffers = pack_layer_data(data, graph, pinned=False)

        assert buffers["weights"].size == layer.weight_count * 4
        assert torch.equal(buffers["row_offsets"].view(torch.int32), graph.row_offsets)

    def test_independent_generators_do_not_interact(self, config):
        """Randomizing with one generator does not disturb another."""
        layer = config.build()
        reference = layer.randomize_data(torch.Generator().manual_seed(77))[0].weights

        other = torch.Generator().manual_seed(5)
        target = torch.Generator().manual_seed(77)
        layer.randomize_data(other)
        weights = layer.randomize_data(target)[0].weights

        assert torch.equal(weights, reference)
