import numpy as np
from PIL import Image

from slicer.imaging import crop_slice, resample_filter, resize_frame, write_static_gif


def test_resample_filter_by_quality():
    assert resample_filter(0) == Image.Resampling.BILINEAR
    assert resample_filter(1) == Image.Resampling.BILINEAR
    assert resample_filter(2) == Image.Resampling.BOX
    assert resample_filter(3) == Image.Resampling.BOX


def test_resize_frame_to_strip():
    frame = np.zeros((1000, 1532, 3), dtype=np.uint8)
    frame[:, :, 1] = 77

    resized = resize_frame(frame, (766, 500), 2)

    assert resized.shape == (500, 766, 3)
    assert resized.dtype == np.uint8
    assert np.all(resized[:, :, 1] == 77)


def test_resize_is_skipped_at_target_size():
    frame = np.random.default_rng(1).integers(0, 256, (40, 766, 3), dtype=np.uint8)
    assert np.array_equal(resize_frame(frame, (766, 40), 0), frame)


def test_crop_slice_copies_columns():
    frame = np.arange(10 * 766 * 3, dtype=np.uint32).astype(np.uint8).reshape(10, 766, 3)

    region = crop_slice(frame, 154, 150)

    assert region.shape == (10, 150, 3)
    assert region.flags["C_CONTIGUOUS"]
    assert np.array_equal(region, frame[:, 154:304, :])
    region[0, 0, 0] ^= 0xFF
    assert region[0, 0, 0] != frame[0, 154, 0]


def test_write_static_gif(tmp_path):
    region = np.full((500, 150, 3), 128, dtype=np.uint8)
    path = tmp_path / "slice_1.gif"

    write_static_gif(region, path)

    with Image.open(path) as image:
        assert image.format == "GIF"
        assert image.size == (150, 500)
        assert getattr(image, "n_frames", 1) == 1
    assert path.read_bytes()[-1] == 0x3B
