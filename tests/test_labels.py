from __future__ import annotations

import pytest

from watershed3d.labels import (
    MASKED,
    UNVISITED,
    WATERSHED,
    Basin,
    Masked,
    Unvisited,
    Watershed,
    classify_label,
    encode_label,
)


def test_classify_each_state() -> None:
    assert classify_label(UNVISITED) == Unvisited()
    assert classify_label(MASKED) == Masked()
    assert classify_label(WATERSHED) == Watershed()
    assert classify_label(7) == Basin(7)


def test_encode_inverts_classify() -> None:
    for value in (UNVISITED, MASKED, WATERSHED, 1, 42):
        assert encode_label(classify_label(value)) == value


def test_invalid_values_are_unrepresentable() -> None:
    with pytest.raises(ValueError):
        Basin(0)
    with pytest.raises(ValueError):
        classify_label(-3)
    with pytest.raises(TypeError):
        encode_label(5)
