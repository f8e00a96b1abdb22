import pytest

from slicer.geometry import (
    GAP_WIDTH,
    SHOWCASE_WIDTH,
    SLICE_COUNT,
    SLICE_WIDTH,
    TargetGeometry,
    scaled_height,
    slice_offsets,
    valid_slices,
)


def test_default_offsets():
    assert slice_offsets(SLICE_COUNT, SLICE_WIDTH, GAP_WIDTH) == [0, 154, 308, 462, 616]


def test_offsets_strictly_increase_without_overlap():
    offsets = slice_offsets(SLICE_COUNT, SLICE_WIDTH, GAP_WIDTH)
    for left, right in zip(offsets, offsets[1:]):
        assert right > left
        assert right - left >= SLICE_WIDTH


def test_all_slices_fit_showcase_width():
    fitting = valid_slices(SHOWCASE_WIDTH)
    assert [index for index, _ in fitting] == [0, 1, 2, 3, 4]
    last_index, last_offset = fitting[-1]
    assert last_offset + SLICE_WIDTH == SHOWCASE_WIDTH


def test_narrow_frame_drops_trailing_slices():
    assert valid_slices(600) == [(0, 0), (1, 154), (2, 308)]
    assert valid_slices(SLICE_WIDTH) == [(0, 0)]
    assert valid_slices(SLICE_WIDTH - 1) == []


def test_walk_stops_at_first_slice_that_does_not_fit():
    # Slice 1 ends at 304; a 303px frame fits slice 0 only
    assert valid_slices(303) == [(0, 0)]
    assert valid_slices(304) == [(0, 0), (1, 154)]


@pytest.mark.parametrize("args", [(0, 150, 4), (5, 0, 4), (5, 150, -1)])
def test_offsets_reject_bad_arguments(args):
    with pytest.raises(ValueError):
        slice_offsets(*args)


@pytest.mark.parametrize("width, height, expected", [
    (1532, 1000, 500),
    (1920, 1080, 431),
    (766, 100, 100),
    (4, 1, 192),  # 191.5 rounds up
])
def test_scaled_height(width, height, expected):
    assert scaled_height(SHOWCASE_WIDTH, width, height) == expected


def test_scaled_height_rejects_empty_source():
    with pytest.raises(ValueError):
        scaled_height(SHOWCASE_WIDTH, 0, 100)
    with pytest.raises(ValueError):
        scaled_height(SHOWCASE_WIDTH, 100, 0)


def test_target_geometry_for_source():
    geometry = TargetGeometry.for_source(1532, 1000)
    assert geometry.strip_size == (766, 500)
    assert geometry.slice_size == (150, 500)
    assert geometry.offsets() == [0, 154, 308, 462, 616]
    assert len(geometry.valid_slices(geometry.strip_width)) == 5


def test_target_geometry_requires_positive_height():
    with pytest.raises(ValueError):
        TargetGeometry(target_height=0)
    # A very wide source rounds down to nothing
    with pytest.raises(ValueError):
        TargetGeometry.for_source(100000, 10)
