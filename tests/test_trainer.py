"""
Tests for model training and version assignment
"""
import math
from datetime import date, datetime, timedelta, timezone

import pytest

from moodsignal.core.exceptions import InsufficientTrainingData
from moodsignal.pipeline.features import FEATURE_NAMES, complete_rows_only, to_frame
from moodsignal.pipeline.trainer import TrainedModel, train_model
from moodsignal.pipeline.versioning import VersionSource, next_free_version, version_stamp

from helpers import make_row


def fixed_clock(when=datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)):
    return lambda: when


class TestCompleteRowsOnly:

    def test_drops_rows_missing_a_feature_or_label(self):
        rows = [
            make_row("u1", date(2025, 3, 1)),
            make_row("u1", date(2025, 3, 2), hrv=None),
            make_row("u1", date(2025, 3, 3), label=None),
        ]

        frame = complete_rows_only(to_frame(rows))

        assert len(frame) == 1
        assert frame.loc[0, "day"] == date(2025, 3, 1)


class TestTrainModel:

    def test_identical_rows_give_finite_model_and_matching_mae(self):
        rows = [make_row("u1", date(2025, 3, d), value=1.0, label=label) for d, label in [(1, 3), (2, 4), (3, 5)]]

        model = train_model(rows, lam=1.0, version_source=VersionSource(fixed_clock()))

        assert all(math.isfinite(c) for c in model.coefficients)
        assert math.isfinite(model.intercept)
        predicted = model.intercept + sum(model.coefficients)
        expected_mae = sum(abs(predicted - y) for y in [3, 4, 5]) / 3
        assert model.train_mae == pytest.approx(expected_mae)
        assert model.train_rows == 3

    def test_fewer_than_two_complete_rows(self):
        rows = [make_row("u1", date(2025, 3, 1)), make_row("u1", date(2025, 3, 2), steps=None)]

        with pytest.raises(InsufficientTrainingData) as exc:
            train_model(rows, lam=1.0)

        assert exc.value.complete_rows == 1

    def test_no_rows(self):
        with pytest.raises(InsufficientTrainingData):
            train_model([], lam=1.0)

    def test_incomplete_rows_do_not_influence_fit(self):
        base = [make_row("u1", date(2025, 3, d), value=float(d), label=d % 5 + 1) for d in range(1, 8)]
        noisy = base + [make_row("u2", date(2025, 3, 1), value=100.0, label=1, commute_min=None)]
        clock = VersionSource(fixed_clock())

        clean_model = train_model(base, lam=1.0, version_source=clock)
        noisy_model = train_model(noisy, lam=1.0, version_source=clock)

        assert noisy_model.coefficients == clean_model.coefficients
        assert noisy_model.intercept == clean_model.intercept
        assert noisy_model.train_rows == 7

    def test_model_shape(self):
        rows = [make_row("u1", date(2025, 3, d), value=float(d), label=3) for d in range(1, 4)]

        model = train_model(rows, lam=0.5, version_source=VersionSource(fixed_clock()))

        assert model.features == FEATURE_NAMES
        assert len(model.coefficients) == len(model.features)
        assert model.lam == 0.5
        assert model.model_version == "v20250301-120000"
        assert model.created_at == datetime(2025, 3, 1, 12, tzinfo=timezone.utc)

    def test_coefficient_length_invariant(self):
        with pytest.raises(ValueError):
            TrainedModel(
                model_version="v1",
                features=["a", "b"],
                coefficients=[1.0],
                intercept=0.0,
                lam=1.0,
                train_mae=0.0,
                created_at=datetime.now(timezone.utc),
            )


class TestVersionSource:

    def test_same_second_gets_distinct_versions(self):
        source = VersionSource(fixed_clock())

        versions = [source.next_version()[0] for _ in range(3)]

        assert versions == ["v20250301-120000", "v20250301-120000-1", "v20250301-120000-2"]

    def test_new_second_resets_sequence(self):
        ticks = iter([
            datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc),
            datetime(2025, 3, 1, 12, 0, 0, 500000, tzinfo=timezone.utc),
            datetime(2025, 3, 1, 12, 0, 1, tzinfo=timezone.utc),
        ])
        source = VersionSource(lambda: next(ticks))

        versions = [source.next_version()[0] for _ in range(3)]

        assert versions == ["v20250301-120000", "v20250301-120000-1", "v20250301-120001"]

    def test_two_trainings_same_second(self):
        rows = [make_row("u1", date(2025, 3, 1) + timedelta(days=d), value=float(d), label=3) for d in range(3)]
        source = VersionSource(fixed_clock())

        first = train_model(rows, version_source=source)
        second = train_model(rows, version_source=source)

        assert first.model_version != second.model_version


class TestNextFreeVersion:

    def test_free_version_is_kept(self):
        assert next_free_version("v20250301-120000", ["v20250301-115959"]) == "v20250301-120000"

    def test_taken_version_moves_to_first_free_suffix(self):
        taken = ["v20250301-120000", "v20250301-120000-1", "v20250301-120000-3"]

        assert next_free_version("v20250301-120000", taken) == "v20250301-120000-2"
        assert next_free_version("v20250301-120000-1", taken) == "v20250301-120000-2"

    def test_stamp(self):
        assert version_stamp("v20250301-120000-12") == "v20250301-120000"
        assert version_stamp("v20250301-120000") == "v20250301-120000"
