"""Sparse feature-map connectivity in CSR form.

A sparse convolution connects each output feature map to a subset of the
input feature maps. The connectivity is stored as compressed sparse rows:
- row_offsets: [out + 1] int32, output k owns columns[row_offsets[k]:row_offsets[k + 1]]
- columns: [connection_count] int32 input feature map indices

The random generator assigns edges round-robin over output feature maps while
drawing inputs from a pool that is refilled only after every input has been
used once. This spreads inputs and outputs evenly without requiring equal
per-output counts.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

import torch
from torch import Tensor

from ..errors import InternalInconsistencyError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ConnectivityGraph:
    """Bipartite input -> output feature map graph in CSR layout.

    Attributes:
        row_offsets: Offsets into columns per output feature map [out + 1] (int32)
        columns: Input feature map index per edge [connection_count] (int32)
        input_feature_map_count: Number of input feature maps (column range)

    Example:
        >>> graph = ConnectivityGraph(
        ...     row_offsets=torch.tensor([0, 2, 3], dtype=torch.int32),
        ...     columns=torch.tensor([0, 2, 1], dtype=torch.int32),
        ...     input_feature_map_count=3,
        ... )
        >>> graph.input_counts().tolist()
        [2, 1]
    """

    row_offsets: Tensor  # [out + 1] int32
    columns: Tensor  # [connection_count] int32
    input_feature_map_count: int

    @property
    def output_feature_map_count(self) -> int:
        return self.row_offsets.numel() - 1

    @property
    def connection_count(self) -> int:
        return self.columns.numel()

    def input_counts(self) -> Tensor:
        """Number of connected inputs per output feature map [out]."""
        return self.row_offsets[1:] - self.row_offsets[:-1]

    def inputs_for(self, output_feature_map_id: int) -> Tensor:
        """Connected input feature maps of one output, ascending."""
        start = int(self.row_offsets[output_feature_map_id])
        end = int(self.row_offsets[output_feature_map_id + 1])
        return self.columns[start:end]

    def to_dense(self) -> Tensor:
        """Boolean adjacency matrix [out, in]."""
        dense = torch.zeros(
            self.output_feature_map_count, self.input_feature_map_count, dtype=torch.bool
        )
        for k in range(self.output_feature_map_count):
            dense[k, self.inputs_for(k).long()] = True
        return dense

    def validate(self) -> Tuple[bool, Optional[str]]:
        """Validate CSR structure.

        Checks:
        1. row_offsets has at least one entry, starts at 0 and ends at len(columns)
        2. row_offsets is non-decreasing
        3. All columns are in range [0, input_feature_map_count)
        4. Each output's column slice is strictly ascending (no duplicate edges)

        Returns:
            Tuple of (is_valid, error_message or None)
        """
        if self.row_offsets.dim() != 1 or self.row_offsets.numel() < 1:
            return False, "row_offsets must be a non-empty 1-D tensor"
        if self.columns.dim() != 1:
            return False, "columns must be a 1-D tensor"

        if int(self.row_offsets[0]) != 0:
            return False, f"row_offsets must start at 0, got {int(self.row_offsets[0])}"
        if int(self.row_offsets[-1]) != self.connection_count:
            return False, (
                f"row_offsets must end at connection count ({self.connection_count}), "
                f"got {int(self.row_offsets[-1])}"
            )
        if (self.input_counts() < 0).any():
            return False, "row_offsets must be non-decreasing"

        if self.columns.numel() > 0:
            min_idx = int(self.columns.min())
            max_idx = int(self.columns.max())
            if min_idx < 0:
                return False, f"columns contains negative value: {min_idx}"
            if max_idx >= self.input_feature_map_count:
                return False, (
                    f"columns contains out-of-range value: {max_idx} >= "
                    f"input_feature_map_count ({self.input_feature_map_count})"
                )

        for k in range(self.output_feature_map_count):
            inputs = self.inputs_for(k)
            if inputs.numel() > 1 and not bool((inputs[1:] > inputs[:-1]).all()):
                return False, f"Output feature map {k} inputs are not strictly ascending"

        return True, None


def generate_sparse_connectivity(
    input_feature_map_count: int,
    output_feature_map_count: int,
    feature_map_connection_count: int,
    generator: torch.Generator,
) -> ConnectivityGraph:
    """Randomly connect input feature maps to output feature maps.

    Places exactly ``feature_map_connection_count`` distinct edges. Outputs
    take turns following a cyclic schedule of length
    ``connection_count + output_count``; each turn picks uniformly among the
    pooled inputs the output is not yet connected to. The pool is refilled
    with every input once it runs dry, so an input may feed several outputs
    but never the same output twice.

    Args:
        input_feature_map_count: Number of input feature maps
        output_feature_map_count: Number of output feature maps
        feature_map_connection_count: Total number of edges, within
            [max(in, out), in * out]
        generator: Caller-owned RNG, the only source of randomness

    Returns:
        ConnectivityGraph with each output's inputs sorted ascending

    Raises:
        ValidationError: If the edge count is outside the feasible range
        InternalInconsistencyError: If no output can accept another edge
    """
    in_count = input_feature_map_count
    out_count = output_feature_map_count
    connection_count = feature_map_connection_count
    if in_count < 1 or out_count < 1:
        raise ValidationError(
            f"feature map counts must be positive, got input={in_count} output={out_count}"
        )
    if not max(in_count, out_count) <= connection_count <= in_count * out_count:
        raise ValidationError(
            f"feature_map_connection_count ({connection_count}) must be in "
            f"[{max(in_count, out_count)}, {in_count * out_count}]"
        )

    connected: List[Set[int]] = [set() for _ in range(out_count)]

    # -1 marks a consumed slot
    schedule = [i % out_count for i in range(connection_count + out_count)]
    cursor = 0
    pool: Set[int] = set()

    for _ in range(connection_count):
        if not pool:
            pool = set(range(in_count))

        for slot in range(cursor, len(schedule)):
            output_id = schedule[slot]
            if output_id == -1:
                continue

            candidates = sorted(pool - connected[output_id])
            if not candidates:
                continue

            choice = 0
            if len(candidates) > 1:
                choice = int(torch.randint(len(candidates), (1,), generator=generator).item())
            input_id = candidates[choice]

            connected[output_id].add(input_id)
            pool.discard(input_id)
            break
        else:
            raise InternalInconsistencyError(
                "Internal error when randomly initializing sparse connections: "
                f"no output feature map can accept another input (cursor={cursor})"
            )

        schedule[slot] = -1
        while cursor < len(schedule) and schedule[cursor] == -1:
            cursor += 1

    row_offsets = torch.zeros(out_count + 1, dtype=torch.int32)
    columns = torch.empty(connection_count, dtype=torch.int32)
    offset = 0
    for output_id, inputs in enumerate(connected):
        row_offsets[output_id] = offset
        columns[offset : offset + len(inputs)] = torch.tensor(sorted(inputs), dtype=torch.int32)
        offset += len(inputs)
    row_offsets[out_count] = offset

    logger.debug(
        "Generated sparse connectivity: %d inputs, %d outputs, %d edges",
        in_count,
        out_count,
        connection_count,
    )
    return ConnectivityGraph(
        row_offsets=row_offsets,
        columns=columns,
        input_feature_map_count=in_count,
    )
