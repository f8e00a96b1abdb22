"""Run-terminal error taxonomy for the slice-and-encode pipeline."""


class SlicerError(Exception):
    """Base class for errors that end a slicing run."""
    pass


class OpenFailed(SlicerError):
    """Raised when the source image or video cannot be decoded at all."""
    pass


class EncoderInitFailed(SlicerError):
    """Raised when a slice's GIF encoder cannot be set up."""
    pass


class IoFailed(SlicerError):
    """Raised when the output directory or an output file cannot be written."""
    pass
