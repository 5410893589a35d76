"""Tagged read/write of layer descriptors.

Each layer body on disk is preceded by its 16-byte UUID tag. The tag selects
both the layer kind and the body layout version.
"""

import logging
import uuid
from typing import BinaryIO, Dict, Type

from ..errors import CorruptStreamError
from .binary_io import read_exact
from .sparse_convolution import LAYER_GUID, LAYER_GUID_V1, SparseConvolutionLayer

logger = logging.getLogger(__name__)

LAYER_TYPES: Dict[uuid.UUID, Type[SparseConvolutionLayer]] = {
    LAYER_GUID: SparseConvolutionLayer,
    LAYER_GUID_V1: SparseConvolutionLayer,
}


def save_layer(stream: BinaryIO, layer: SparseConvolutionLayer) -> None:
    """Write ``layer`` preceded by its current tag."""
    stream.write(layer.layer_guid.bytes)
    layer.write(stream)


def load_layer(stream: BinaryIO) -> SparseConvolutionLayer:
    """Read a tagged layer written by save_layer (or a legacy writer).

    Raises:
        CorruptStreamError: On a truncated stream or an unknown tag
    """
    layer_guid = uuid.UUID(bytes=read_exact(stream, 16))
    layer_type = LAYER_TYPES.get(layer_guid)
    if layer_type is None:
        raise CorruptStreamError(f"Unknown layer tag {layer_guid}")
    logger.debug("Loading %s with tag %s", layer_type.__name__, layer_guid)
    return layer_type.read(stream, layer_guid)
