"""Host-side linear byte buffers for accelerator transfers.

A HostLinearBuffer is a flat uint8 tensor, optionally page-locked so that
host -> device copies can run asynchronously. Layer arrays are copied in as
raw native-width bytes and viewed back with any dtype.
"""

import warnings
from typing import Dict, Optional

import torch
from torch import Tensor

from ..layers.connectivity import ConnectivityGraph
from ..layers.initialization import LayerData


def _element_size(dtype: torch.dtype) -> int:
    return torch.empty(0, dtype=dtype).element_size()


class HostLinearBuffer:
    """Contiguous host byte buffer.

    Args:
        size: Buffer size in bytes
        pinned: Page-lock the buffer. None means pin when CUDA is available.
            Requesting pinning without CUDA warns and falls back to pageable
            memory.

    Example:
        >>> buf = HostLinearBuffer(16, pinned=False)
        >>> buf.copy_from(torch.arange(4, dtype=torch.int32))
        >>> buf.view(torch.int32).tolist()
        [0, 1, 2, 3]
    """

    def __init__(self, size: int, pinned: Optional[bool] = None) -> None:
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")

        cuda_available = torch.cuda.is_available()
        if pinned is None:
            pinned = cuda_available
        elif pinned and not cuda_available:
            warnings.warn("CUDA not available, allocating pageable host memory.")
            pinned = False

        self._buf = torch.empty(size, dtype=torch.uint8, pin_memory=pinned)
        self.pinned = pinned

    @property
    def size(self) -> int:
        return self._buf.numel()

    def as_tensor(self) -> Tensor:
        """Underlying uint8 tensor (shares memory)."""
        return self._buf

    def view(self, dtype: torch.dtype, offset: int = 0, count: Optional[int] = None) -> Tensor:
        """Reinterpret bytes starting at ``offset`` as ``count`` elements of ``dtype``."""
        item_size = _element_size(dtype)
        if count is None:
            count = (self.size - offset) // item_size
        end = offset + count * item_size
        if offset < 0 or count < 0 or end > self.size:
            raise ValueError(
                f"View of {count} x {dtype} at offset {offset} exceeds buffer size {self.size}"
            )
        return self._buf[offset:end].view(dtype)

    def copy_from(self, tensor: Tensor, offset: int = 0) -> int:
        """Copy the raw bytes of ``tensor`` in at ``offset``.

        Returns:
            Number of bytes written
        """
        src = tensor.detach().to("cpu").contiguous().view(-1).view(torch.uint8)
        end = offset + src.numel()
        if offset < 0 or end > self.size:
            raise ValueError(
                f"Copy of {src.numel()} bytes at offset {offset} exceeds buffer size {self.size}"
            )
        self._buf[offset:end].copy_(src)
        return src.numel()

    def __repr__(self) -> str:
        return f"HostLinearBuffer(size={self.size}, pinned={self.pinned})"


def pack_layer_data(
    data: LayerData,
    graph: ConnectivityGraph,
    pinned: Optional[bool] = None,
) -> Dict[str, HostLinearBuffer]:
    """Copy every layer array into its own host buffer.

    Returns:
        Dict with "weights", "biases", "columns" and "row_offsets" buffers
    """
    arrays = {
        "weights": data.weights,
        "biases": data.biases,
        "columns": graph.columns,
        "row_offsets": graph.row_offsets,
    }
    buffers = {}
    for name, array in arrays.items():
        buf = HostLinearBuffer(array.numel() * array.element_size(), pinned=pinned)
        buf.copy_from(array)
        buffers[name] = buf
    return buffers
