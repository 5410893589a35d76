#!/usr/bin/env python3
"""Benchmarks for sparse convolution layer randomization.

Times connectivity generation and weight initialization across connection
densities, and prints the FLOP estimates for a reference input shape.

Usage:
    python benchmarks/bench_connectivity.py --input-fm 64 --output-fm 128
"""

import argparse
import time
from typing import Dict, List

import torch

from sparseconv_core import LayerConfigurationSpecific, SparseConvolutionLayer


def time_randomization(
    layer: SparseConvolutionLayer,
    iterations: int,
    seed: int,
) -> Dict[str, float]:
    """Time connectivity and weight generation separately.

    Returns:
        Dict with mean milliseconds for "connectivity" and "weights"
    """
    generator = torch.Generator().manual_seed(seed)
    connectivity_s = 0.0
    weights_s = 0.0

    for _ in range(iterations):
        start = time.perf_counter()
        graph = layer.randomize_connectivity(generator)
        mid = time.perf_counter()
        layer.randomize_weights(graph, generator)
        end = time.perf_counter()

        connectivity_s += mid - start
        weights_s += end - mid

    return {
        "connectivity": connectivity_s / iterations * 1000,
        "weights": weights_s / iterations * 1000,
    }


def run_benchmark_suite(
    input_fm: int,
    output_fm: int,
    window: int,
    spatial: int,
    ratios: List[float],
    iterations: int,
    seed: int,
) -> List[Dict[str, float]]:
    """Benchmark each sparsity ratio at the given geometry."""
    shape = LayerConfigurationSpecific(input_fm, (spatial, spatial))
    results = []

    for ratio in ratios:
        layer = SparseConvolutionLayer.from_sparsity_ratio(
            (window, window), input_fm, output_fm, ratio
        )
        timings = time_randomization(layer, iterations, seed)
        flops = layer.estimate_flops(shape)
        results.append(
            {
                "ratio": ratio,
                "connections": layer.feature_map_connection_count,
                "connectivity_ms": timings["connectivity"],
                "weights_ms": timings["weights"],
                "forward_gflops": flops.forward / 1e9,
                "total_gflops": flops.total / 1e9,
            }
        )

    return results


def print_summary(results: List[Dict[str, float]]) -> None:
    print("\n" + "=" * 78)
    print(
        f"{'Ratio':<8} {'Connections':<12} {'Graph (ms)':<12} {'Weights (ms)':<14} "
        f"{'Fwd GFLOP':<12} {'Total GFLOP':<12}"
    )
    print("-" * 78)
    for r in results:
        print(
            f"{r['ratio']:<8.2f} {r['connections']:<12d} {r['connectivity_ms']:>10.3f}   "
            f"{r['weights_ms']:>10.3f}     {r['forward_gflops']:>9.4f}    {r['total_gflops']:>9.4f}"
        )
    print("=" * 78)


def main():
    """Main entry point for benchmarks."""
    parser = argparse.ArgumentParser(description="Sparse Convolution Randomization Benchmarks")
    parser.add_argument("--input-fm", type=int, default=64, help="Input feature maps")
    parser.add_argument("--output-fm", type=int, default=128, help="Output feature maps")
    parser.add_argument("--window", type=int, default=3, help="Square window size")
    parser.add_argument("--spatial", type=int, default=32, help="Square input size for FLOPs")
    parser.add_argument("--iterations", type=int, default=10, help="Benchmark iterations")
    parser.add_argument("--seed", type=int, default=0, help="Generator seed")
    parser.add_argument("--ratios", type=float, nargs="+", default=[0.25, 0.5, 0.75, 1.0],
                        help="Connection sparsity ratios to benchmark")
    args = parser.parse_args()

    print("Sparse Convolution Randomization Benchmarks")
    print("=" * 50)

    results = run_benchmark_suite(
        input_fm=args.input_fm,
        output_fm=args.output_fm,
        window=args.window,
        spatial=args.spatial,
        ratios=args.ratios,
        iterations=args.iterations,
        seed=args.seed,
    )

    print_summary(results)


if __name__ == "__main__":
    main()
