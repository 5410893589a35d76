"""Unlabeled data readers and per-feature-map input statistics.

A reader hands out one flattened sample per ``read`` call until the epoch is
exhausted, then must be ``reset`` to start over. compute_feature_map_stats
walks the data twice (mean first, then standard deviation) so it only needs
a single sample buffer regardless of dataset size.
"""

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

import torch
from torch import Tensor

from ..errors import DataReaderError
from ..layers.shapes import LayerConfigurationSpecific

logger = logging.getLogger(__name__)


class InputType(enum.Enum):
    """Element type of samples produced by a reader."""

    BYTE = "byte"
    FLOAT = "float"

    @property
    def dtype(self) -> torch.dtype:
        return torch.uint8 if self is InputType.BYTE else torch.float32

    @property
    def element_size(self) -> int:
        return 1 if self is InputType.BYTE else 4


@dataclass
class FeatureMapDataStat:
    """Summary of one input feature map over a whole dataset.

    Attributes:
        min: Smallest value
        max: Largest value
        average: Mean value
        std_dev: Population standard deviation
    """

    min: float
    max: float
    average: float
    std_dev: float


class UnsupervisedDataReader(ABC):
    """Finite, restartable source of unlabeled samples."""

    @property
    @abstractmethod
    def input_configuration(self) -> LayerConfigurationSpecific:
        """Shape of one sample."""

    @property
    @abstractmethod
    def entry_count(self) -> int:
        """Number of samples per epoch."""

    @property
    @abstractmethod
    def input_type(self) -> InputType:
        """Element type of samples."""

    @abstractmethod
    def read(self, out: Tensor) -> bool:
        """Fill ``out`` with the next flattened sample.

        Returns:
            False when the epoch is exhausted (``out`` untouched)
        """

    @abstractmethod
    def reset(self) -> None:
        """Rewind to the first sample."""

    @property
    def input_neuron_elem_size(self) -> int:
        """Bytes per sample element."""
        return self.input_type.element_size

    def next_epoch(self) -> None:
        self.reset()


class TensorDataReader(UnsupervisedDataReader):
    """Reader over an in-memory tensor of samples.

    Args:
        samples: Tensor [N, feature_maps, *dimension_sizes] of uint8 or float32

    Example:
        >>> reader = TensorDataReader(torch.zeros(10, 3, 8, 8))
        >>> reader.input_configuration
        LayerConfigurationSpecific(feature_map_count=3, dimension_sizes=(8, 8))
    """

    def __init__(self, samples: Tensor) -> None:
        if samples.dim() < 2:
            raise ValueError(
                f"samples must be [N, feature_maps, *dims], got shape {tuple(samples.shape)}"
            )
        if samples.dtype == torch.uint8:
            self._input_type = InputType.BYTE
        elif samples.dtype == torch.float32:
            self._input_type = InputType.FLOAT
        else:
            raise ValueError(f"samples dtype must be uint8 or float32, got {samples.dtype}")

        self._samples = samples
        self._configuration = LayerConfigurationSpecific(
            feature_map_count=samples.shape[1],
            dimension_sizes=tuple(samples.shape[2:]),
        )
        self._position = 0

    @property
    def input_configuration(self) -> LayerConfigurationSpecific:
        return self._configuration

    @property
    def entry_count(self) -> int:
        return self._samples.shape[0]

    @property
    def input_type(self) -> InputType:
        return self._input_type

    def read(self, out: Tensor) -> bool:
        if self._position >= self.entry_count:
            return False
        out.copy_(self._samples[self._position].reshape(-1))
        self._position += 1
        return True

    def reset(self) -> None:
        self._position = 0


def compute_feature_map_stats(reader: UnsupervisedDataReader) -> List[FeatureMapDataStat]:
    """Per-feature-map min, max, mean and standard deviation of a reader's data.

    The reader is reset before each of the two passes and left exhausted.

    Args:
        reader: Float reader with at least one entry

    Returns:
        One FeatureMapDataStat per input feature map

    Raises:
        DataReaderError: If the reader is not float or has no entries
    """
    if reader.input_type is not InputType.FLOAT:
        raise DataReaderError(
            f"Unable to stat data reader with input data type {reader.input_type.value}"
        )

    reader.reset()

    entry_count = reader.entry_count
    if entry_count == 0:
        raise DataReaderError("Unable to stat data reader with no entries")

    configuration = reader.input_configuration
    feature_map_count = configuration.feature_map_count
    neurons_per_feature_map = configuration.neuron_count_per_feature_map

    sample = torch.empty(configuration.neuron_count, dtype=torch.float32)
    per_fm = sample.view(feature_map_count, neurons_per_feature_map)
    mult = 1.0 / (float(entry_count) * float(neurons_per_feature_map))

    mins = torch.full((feature_map_count,), float("inf"))
    maxs = torch.full((feature_map_count,), float("-inf"))
    sums = torch.zeros(feature_map_count, dtype=torch.float64)
    while reader.read(sample):
        mins = torch.minimum(mins, per_fm.min(dim=1).values)
        maxs = torch.maximum(maxs, per_fm.max(dim=1).values)
        sums += per_fm.sum(dim=1, dtype=torch.float64)
    averages = (sums * mult).to(torch.float32)

    reader.reset()

    squares = torch.zeros(feature_map_count, dtype=torch.float64)
    while reader.read(sample):
        diff = per_fm - averages.unsqueeze(1)
        squares += (diff * diff).sum(dim=1, dtype=torch.float64)
    std_devs = torch.sqrt(squares * mult)

    logger.debug(
        "Computed input statistics over %d entries, %d feature maps",
        entry_count,
        feature_map_count,
    )
    return [
        FeatureMapDataStat(
            min=float(mins[i]),
            max=float(maxs[i]),
            average=float(averages[i]),
            std_dev=float(std_devs[i]),
        )
        for i in range(feature_map_count)
    ]
