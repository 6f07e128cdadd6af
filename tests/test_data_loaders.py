"""
Tests for dataset loading, imputation and scaling.
"""

import numpy as np
import pandas as pd
import pytest

from utils.data_loaders import (
    CATEGORICAL_COLUMNS,
    PENGUIN_COLUMNS,
    get_categorical_columns,
    get_numeric_columns,
    impute_missing,
    load_raw_penguins,
    missing_value_summary,
    scale_numeric,
)


class TestLoadRawPenguins:
    """Tests for load_raw_penguins."""

    def test_bundled_dataset(self):
        """The bundled dataset has the expected columns and some missing values."""
        data = load_raw_penguins()
        assert list(data.columns) == PENGUIN_COLUMNS
        assert len(data) == 344
        assert data.isna().any().any()
        assert set(data["species"].dropna()) == {"Adelie", "Chinstrap", "Gentoo"}

    def test_csv_path(self, tmp_path, penguins):
        """A CSV file can replace the bundled data; NA strings become NaN."""
        path = tmp_path / "penguins.csv"
        frame = penguins.copy().astype({"sex": object})
        frame.loc[0, "sex"] = "NA"
        frame[list(reversed(PENGUIN_COLUMNS))].to_csv(path, index=False)

        data = load_raw_penguins(path)
        assert list(data.columns) == PENGUIN_COLUMNS
        assert pd.isna(data.loc[0, "sex"])
        assert np.allclose(data["body_mass_g"], penguins["body_mass_g"])

    def test_missing_columns(self, tmp_path, penguins):
        """Missing required columns are reported by name."""
        path = tmp_path / "broken.csv"
        penguins.drop(columns=["island", "year"]).to_csv(path, index=False)

        with pytest.raises(ValueError, match="island, year"):
            load_raw_penguins(path)


class TestColumnTypes:
    """Tests for the column type helpers."""

    def test_numeric_excludes_year(self, penguins):
        assert get_numeric_columns(penguins) == [
            "bill_length_mm", "bill_depth_mm", "flipper_length_mm", "body_mass_g",
        ]

    def test_numeric_no_exclusion(self, penguins):
        assert "year" in get_numeric_columns(penguins, exclude=())

    def test_categorical(self, penguins):
        assert get_categorical_columns(penguins) == CATEGORICAL_COLUMNS


class TestImputeMissing:
    """Tests for median / mode imputation."""

    def test_numeric_median(self, penguins_with_missing):
        """Missing numeric values become the column median."""
        expected = penguins_with_missing["bill_length_mm"].median()
        clean = impute_missing(penguins_with_missing)

        assert clean["bill_length_mm"].isna().sum() == 0
        assert clean.loc[0, "bill_length_mm"] == expected
        assert clean.loc[5, "bill_length_mm"] == expected
        assert clean.loc[3, "body_mass_g"] == penguins_with_missing["body_mass_g"].median()

    def test_categorical_mode(self, penguins_with_missing):
        """Missing categorical values become the column mode."""
        expected = penguins_with_missing["sex"].mode().iloc[0]
        clean = impute_missing(penguins_with_missing)

        assert clean["sex"].isna().sum() == 0
        assert (clean.loc[[1, 2, 40], "sex"] == expected).all()

    def test_observed_values_unchanged(self, penguins_with_missing):
        clean = impute_missing(penguins_with_missing)
        observed = penguins_with_missing.notna()
        pd.testing.assert_frame_equal(
            clean[observed].dropna(how="all"),
            penguins_with_missing[observed].dropna(how="all"),
        )

    def test_input_not_mutated(self, penguins_with_missing):
        before = penguins_with_missing.copy()
        impute_missing(penguins_with_missing)
        pd.testing.assert_frame_equal(penguins_with_missing, before)

    def test_mode_tie_takes_first_sorted(self):
        data = pd.DataFrame({"sex": ["male", "female", np.nan, "female", "male"]}, dtype=object)
        clean = impute_missing(data)
        assert clean.loc[2, "sex"] == "female"

    def test_all_missing_column_left_alone(self):
        data = pd.DataFrame({"a": [np.nan, np.nan], "b": [1.0, np.nan]})
        clean = impute_missing(data)
        assert clean["a"].isna().all()
        assert clean.loc[1, "b"] == 1.0

    def test_bundled_dataset_fully_imputed(self, clean_penguins):
        assert not clean_penguins.isna().any().any()
        assert len(clean_penguins) == 344


class TestMissingValueSummary:
    """Tests for missing_value_summary."""

    def test_counts_and_fill_values(self, penguins_with_missing):
        summary = missing_value_summary(penguins_with_missing).set_index("Variable")

        assert summary.loc["bill_length_mm", "Missing"] == 2
        assert summary.loc["sex", "Missing"] == 3
        assert summary.loc["species", "Missing"] == 0
        assert summary.loc["bill_length_mm", "Type"] == "numeric"
        assert summary.loc["sex", "Type"] == "categorical"
        assert summary.loc["bill_length_mm", "Imputed with"] == pytest.approx(
            penguins_with_missing["bill_length_mm"].median())
        assert pd.isna(summary.loc["species", "Imputed with"])


class TestScaleNumeric:
    """Tests for z-score scaling."""

    def test_zero_mean_unit_variance(self, penguins):
        cols = ["bill_length_mm", "body_mass_g"]
        scaled = scale_numeric(penguins, cols)

        assert np.allclose(scaled[cols].mean(), 0.0, atol=1e-10)
        assert np.allclose(scaled[cols].std(ddof=0), 1.0)
        # Other columns pass through
        pd.testing.assert_series_equal(scaled["flipper_length_mm"], penguins["flipper_length_mm"])

    def test_default_columns(self, penguins):
        scaled = scale_numeric(penguins)
        assert np.allclose(scaled["bill_depth_mm"].mean(), 0.0, atol=1e-10)
        pd.testing.assert_series_equal(scaled["year"], penguins["year"])

    def test_constant_column_becomes_zero(self):
        data = pd.DataFrame({"a": [2.0, 2.0, 2.0], "b": [1.0, 2.0, 3.0]})
        assert (scale_numeric(data, ["a"])["a"] == 0.0).all()

    def test_missing_values_rejected(self, penguins_with_missing):
        with pytest.raises(ValueError, match="missing"):
            scale_numeric(penguins_with_missing, ["bill_length_mm"])
