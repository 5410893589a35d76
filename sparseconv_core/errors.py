"""Exception types raised by sparseconv_core.

Every error subclasses both ``SparseConvError`` and the closest built-in
exception, so callers can catch either the library-specific type or the
generic one (``ValueError`` for bad parameters, ``IOError`` for bad streams).
"""


class SparseConvError(Exception):
    """Base class for all sparseconv_core errors."""


class ValidationError(SparseConvError, ValueError):
    """Malformed layer descriptor or configuration.

    Raised for an empty window list, a zero-sized window dimension, a
    connection count outside ``[max(in, out), in * out]`` or padding that is
    not smaller than the window.
    """


class ConfigMismatchError(SparseConvError, ValueError):
    """Input shape is inconsistent with the layer it is fed to."""


class GeometryError(SparseConvError, ValueError):
    """Padded input is smaller than the layer window."""


class InternalInconsistencyError(SparseConvError, RuntimeError):
    """An algorithm reached a state that validated inputs cannot produce."""


class CorruptStreamError(SparseConvError, IOError):
    """A serialized layer could not be decoded."""


class DataReaderError(SparseConvError, RuntimeError):
    """A data reader cannot provide what was asked of it."""
