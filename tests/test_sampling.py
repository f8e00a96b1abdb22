import math

import pytest

from slicer.sampling import DEFAULT_SOURCE_FPS, SamplingCadence


@pytest.mark.parametrize("rate", range(1, 11))
def test_cadence_keeps_expected_frames(rate):
    cadence = SamplingCadence.from_rate(rate)
    divisor = 11 - rate
    assert cadence.divisor == divisor

    kept = [index for index in range(100) if cadence.keeps(index)]
    assert len(kept) == math.ceil(100 / divisor)
    assert kept == list(range(0, 100, divisor))


def test_first_frame_always_kept():
    for rate in range(1, 11):
        assert SamplingCadence.from_rate(rate).keeps(0)


@pytest.mark.parametrize("rate", [0, 11, -3])
def test_rate_out_of_range(rate):
    with pytest.raises(ValueError):
        SamplingCadence.from_rate(rate)


def test_divisor_out_of_range():
    with pytest.raises(ValueError):
        SamplingCadence(divisor=0)
    with pytest.raises(ValueError):
        SamplingCadence(divisor=11)


def test_target_fps():
    assert SamplingCadence.from_rate(10).target_fps(30.0) == 30
    assert SamplingCadence.from_rate(1).target_fps(30.0) == 3
    assert SamplingCadence.from_rate(8).target_fps(29.97) == 9


def test_target_fps_never_below_one():
    assert SamplingCadence.from_rate(1).target_fps(5.0) == 1


def test_target_fps_falls_back_without_source_rate():
    cadence = SamplingCadence.from_rate(9)
    expected = int(DEFAULT_SOURCE_FPS // 2)
    assert cadence.target_fps(0) == expected
    assert cadence.target_fps(-1.0) == expected
    assert cadence.target_fps(None) == expected
