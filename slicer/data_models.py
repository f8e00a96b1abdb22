"""Data models and dataclasses for the showcase slicer."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


MIN_SAMPLING_RATE = 1
MAX_SAMPLING_RATE = 10
QUALITY_MODES = (0, 1, 2, 3)


class RunState(Enum):
    """Lifecycle of a single slicing run."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    DRAINING = "draining"
    FINISHED = "finished"


class RunStatus(Enum):
    """How a finished run ended."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskParameters:
    """Resolved inputs for one run. Never mutated by the worker."""
    source_path: Path
    output_dir: Path
    sampling_rate: int = MAX_SAMPLING_RATE
    quality_mode: int = 1

    def __post_init__(self):
        # Accept plain strings from config files
        object.__setattr__(self, "source_path", Path(self.source_path))
        object.__setattr__(self, "output_dir", Path(self.output_dir))

        if isinstance(self.sampling_rate, bool) or not isinstance(self.sampling_rate, int):
            raise ValueError(f"sampling_rate must be an integer, got {type(self.sampling_rate).__name__}")
        if not MIN_SAMPLING_RATE <= self.sampling_rate <= MAX_SAMPLING_RATE:
            raise ValueError(
                f"sampling_rate must be between {MIN_SAMPLING_RATE} and {MAX_SAMPLING_RATE}, "
                f"got {self.sampling_rate}"
            )
        if isinstance(self.quality_mode, bool) or self.quality_mode not in QUALITY_MODES:
            raise ValueError(f"quality_mode must be one of {QUALITY_MODES}, got {self.quality_mode!r}")


@dataclass
class RunOutcome:
    """Result of one slicing run, handed to the caller once the run ends."""
    status: RunStatus
    output_paths: List[Path] = field(default_factory=list)
    last_message: str = ""
    kept_frames: int = 0
    error_kind: Optional[str] = None
    elapsed_seconds: float = 0.0
    slice_size: Optional[Tuple[int, int]] = None

    @property
    def success(self) -> bool:
        """True only for a complete, patched run."""
        return self.status is RunStatus.SUCCESS


@dataclass
class ValidationResult:
    """Result of checking the produced GIF slices."""
    valid: bool
    checked_files: List[Path] = field(default_factory=list)
    error_message: Optional[str] = None
