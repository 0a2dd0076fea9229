"""Tests for embedding vector helpers."""

from __future__ import annotations

import math

import pytest

from secondbrain.db.vectors import (
    distance_to_similarity,
    ensure_dimension,
    fit_dimension,
    from_json,
    stored_dimension,
    to_json,
)


def test_fit_dimension_pads_with_zeros():
    assert fit_dimension([1.0, 2.0], 4) == [1.0, 2.0, 0.0, 0.0]


def test_fit_dimension_truncates():
    assert fit_dimension([1.0, 2.0, 3.0, 4.0], 2) == [1.0, 2.0]


def test_fit_dimension_replaces_non_finite():
    assert fit_dimension([math.nan, math.inf, 1.0], 3) == [0.0, 0.0, 1.0]


def test_fit_dimension_rejects_zero():
    with pytest.raises(ValueError):
        fit_dimension([1.0], 0)


def test_json_round_trip():
    assert from_json(to_json([0.5, -1.0])) == [0.5, -1.0]


@pytest.mark.parametrize("raw", [None, "", "not json", '{"a": 1}'])
def test_from_json_invalid_is_empty(raw):
    assert from_json(raw) == []


@pytest.mark.parametrize(
    ("distance", "expected"),
    [(0.0, 1.0), (0.25, 0.75), (1.0, 0.0), (1.8, 0.0), (-0.2, 1.0)],
)
def test_distance_to_similarity_is_clamped(distance, expected):
    assert distance_to_similarity(distance) == pytest.approx(expected)


@pytest.mark.parametrize("distance", [None, math.nan])
def test_distance_to_similarity_missing(distance):
    assert distance_to_similarity(distance) is None


def test_ensure_dimension_records_first_value(tmp_db):
    assert stored_dimension(tmp_db) is None
    assert ensure_dimension(tmp_db, 8) == 8
    assert stored_dimension(tmp_db) == 8


def test_ensure_dimension_never_overwrites(tmp_db):
    ensure_dimension(tmp_db, 8)
    assert ensure_dimension(tmp_db, 16) == 8
    assert stored_dimension(tmp_db) == 8
