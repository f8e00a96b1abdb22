"""Frame sub-sampling cadence."""

import math
from dataclasses import dataclass

from slicer.data_models import MAX_SAMPLING_RATE, MIN_SAMPLING_RATE


DEFAULT_SOURCE_FPS = 30.0


@dataclass(frozen=True)
class SamplingCadence:
    """Keeps one source frame out of every `divisor`."""
    divisor: int

    def __post_init__(self):
        if not 1 <= self.divisor <= 10:
            raise ValueError(f"divisor must be between 1 and 10, got {self.divisor}")

    @classmethod
    def from_rate(cls, sampling_rate: int) -> "SamplingCadence":
        """
        Map a user sampling rate to a cadence.

        Args:
            sampling_rate: 1 (keep 1 in 10 frames) to 10 (keep every frame)

        Returns:
            SamplingCadence with divisor = 11 - sampling_rate
        """
        if not MIN_SAMPLING_RATE <= sampling_rate <= MAX_SAMPLING_RATE:
            raise ValueError(f"sampling_rate must be between 1 and 10, got {sampling_rate}")
        return cls(divisor=MAX_SAMPLING_RATE + 1 - sampling_rate)

    def keeps(self, frame_index: int) -> bool:
        """True if the zero-based frame index survives sampling."""
        return frame_index % self.divisor == 0

    def target_fps(self, source_fps: float) -> int:
        """Output frame rate; non-positive source rates fall back to 30 fps."""
        fps = source_fps if source_fps and source_fps > 0 else DEFAULT_SOURCE_FPS
        return max(1, int(math.floor(fps / self.divisor)))
