"""
Tests for the PCA and k-means calculation module.
"""

import numpy as np
import pandas as pd
import pytest
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from pca_utils.pca_calculations import (
    add_cluster_column,
    cluster_crosstab,
    cluster_summary,
    compute_kmeans,
    compute_pca,
    elbow_inertia,
    pca_export_tables,
    variance_table,
)

MEASUREMENTS = ["bill_length_mm", "bill_depth_mm", "flipper_length_mm", "body_mass_g"]


class TestComputePca:
    """Tests for compute_pca."""

    def test_shapes(self, penguins):
        result = compute_pca(penguins, MEASUREMENTS)

        assert result["scores"].shape == (len(penguins), 4)
        assert list(result["scores"].columns) == ["PC1", "PC2", "PC3", "PC4"]
        assert result["scores"].index.equals(penguins.index)
        assert result["loadings"].shape == (4, 4)
        assert list(result["loadings"].index) == MEASUREMENTS
        assert result["columns"] == MEASUREMENTS
        assert result["scaled"] is True

    def test_variance_ratios(self, penguins):
        result = compute_pca(penguins, MEASUREMENTS)
        ratio = result["explained_variance_ratio"]

        assert ratio.sum() == pytest.approx(1.0)
        assert np.all(np.diff(ratio) <= 1e-12)
        assert result["cumulative_variance"][-1] == pytest.approx(1.0)
        assert np.allclose(result["cumulative_variance"], np.cumsum(ratio))

    def test_matches_sklearn_on_scaled_data(self, penguins):
        """Scaled PCA is sklearn PCA on the z-scores."""
        result = compute_pca(penguins, MEASUREMENTS)
        X = StandardScaler().fit_transform(penguins[MEASUREMENTS])
        reference = PCA().fit(X)

        assert np.allclose(result["eigenvalues"], reference.explained_variance_)
        assert np.allclose(np.abs(result["scores"].to_numpy()), np.abs(reference.transform(X)))

    def test_unscaled_dominated_by_body_mass(self, penguins):
        """Without scaling the grams column dominates PC1."""
        result = compute_pca(penguins, MEASUREMENTS, scale=False)
        pc1 = result["loadings"]["PC1"].abs()

        assert pc1.idxmax() == "body_mass_g"
        assert result["explained_variance_ratio"][0] > 0.99

    def test_n_components(self, penguins):
        result = compute_pca(penguins, MEASUREMENTS, n_components=2)
        assert list(result["scores"].columns) == ["PC1", "PC2"]
        assert result["explained_variance_ratio"].sum() < 1.0

    @pytest.mark.parametrize("columns", [["bill_length_mm"], []])
    def test_too_few_columns(self, penguins, columns):
        with pytest.raises(ValueError, match="at least 2"):
            compute_pca(penguins, columns)

    def test_too_few_rows(self, penguins):
        with pytest.raises(ValueError, match="observations"):
            compute_pca(penguins.iloc[:1], MEASUREMENTS)

    def test_n_components_out_of_range(self, penguins):
        with pytest.raises(ValueError, match="n_components"):
            compute_pca(penguins, MEASUREMENTS, n_components=5)

    def test_unknown_column(self, penguins):
        with pytest.raises(ValueError, match="Unknown columns: wing_span"):
            compute_pca(penguins, ["bill_length_mm", "wing_span"])

    def test_missing_values_rejected(self, penguins_with_missing):
        with pytest.raises(ValueError, match="missing"):
            compute_pca(penguins_with_missing, MEASUREMENTS)

    def test_variance_table(self, penguins):
        table = variance_table(compute_pca(penguins, MEASUREMENTS))

        assert list(table.columns) == ["Component", "Eigenvalue", "Variance (%)", "Cumulative (%)"]
        assert table["Variance (%)"].sum() == pytest.approx(100.0)
        assert table["Cumulative (%)"].iloc[-1] == pytest.approx(100.0)

    def test_export_tables(self, penguins):
        result = compute_pca(penguins, MEASUREMENTS)
        tables = pca_export_tables(result)

        assert list(tables) == ["Variance", "Loadings", "Scores"]
        assert tables["Loadings"]["Variable"].tolist() == MEASUREMENTS
        assert tables["Scores"].shape == (len(penguins), 4)


class TestComputeKmeans:
    """Tests for compute_kmeans."""

    def test_labels(self, penguins):
        result = compute_kmeans(penguins, MEASUREMENTS)
        labels = result["labels"]

        assert labels.name == "cluster"
        assert labels.index.equals(penguins.index)
        assert set(labels) == {"1", "2", "3"}
        assert result["centers"].shape == (3, 4)
        assert result["inertia"] > 0

    def test_deterministic(self, penguins):
        """Same data and seed give identical assignments."""
        first = compute_kmeans(penguins, MEASUREMENTS, random_state=123)
        second = compute_kmeans(penguins.copy(), MEASUREMENTS, random_state=123)

        pd.testing.assert_series_equal(first["labels"], second["labels"])
        assert first["inertia"] == second["inertia"]

    def test_recovers_species(self, penguins):
        """Well separated synthetic species fall into one cluster each."""
        result = compute_kmeans(penguins, MEASUREMENTS)
        table = cluster_crosstab(result["labels"], penguins["species"])

        assert (table.max(axis=0) == 20).all()
        assert (table.gt(0).sum(axis=0) == 1).all()

    @pytest.mark.parametrize("scale", [True, False])
    def test_centers_are_cluster_means(self, penguins, scale):
        """Centres are reported in the measurement units, whatever the scaling."""
        result = compute_kmeans(penguins, MEASUREMENTS, scale=scale)
        means = cluster_summary(penguins, result["labels"], MEASUREMENTS)[MEASUREMENTS]

        assert list(result["centers"].columns) == MEASUREMENTS
        assert np.allclose(result["centers"].loc[means.index], means)
        assert result["centers"]["body_mass_g"].min() > 3000

    def test_bundled_data(self, clean_penguins):
        result = compute_kmeans(clean_penguins, MEASUREMENTS)
        assert result["labels"].value_counts().sum() == len(clean_penguins)

    def test_invalid_k(self, penguins):
        with pytest.raises(ValueError, match="n_clusters"):
            compute_kmeans(penguins, MEASUREMENTS, n_clusters=0)


class TestClusterTables:
    """Tests for the helpers that combine labels with the data."""

    def test_add_cluster_column(self, penguins):
        labels = compute_kmeans(penguins, MEASUREMENTS)["labels"]
        augmented = add_cluster_column(penguins, labels)

        assert "cluster" not in penguins.columns
        assert list(augmented.columns) == list(penguins.columns) + ["cluster"]
        assert (augmented["cluster"] == labels).all()

    def test_add_cluster_column_length_mismatch(self, penguins):
        with pytest.raises(ValueError, match="lengths"):
            add_cluster_column(penguins, pd.Series(["1", "2"]))

    def test_positional_alignment(self):
        """Labels are matched by position, not by index label."""
        data = pd.DataFrame({"a": [1.0, 2.0, 3.0]}, index=[10, 11, 12])
        labels = pd.Series(["1", "2", "2"])

        augmented = add_cluster_column(data, labels)
        assert augmented["cluster"].tolist() == ["1", "2", "2"]

        summary = cluster_summary(data, labels, ["a"])
        assert summary.loc["2", "n"] == 2
        assert summary.loc["2", "a"] == pytest.approx(2.5)

    def test_crosstab_names(self):
        table = cluster_crosstab(pd.Series(["1", "1", "2"]),
                                 pd.Series(["Adelie", "Adelie", "Gentoo"], name="species"))

        assert table.index.name == "cluster"
        assert table.columns.name == "species"
        assert table.loc["1", "Adelie"] == 2

    def test_cluster_summary(self, penguins):
        labels = compute_kmeans(penguins, MEASUREMENTS)["labels"]
        summary = cluster_summary(penguins, labels, MEASUREMENTS)

        assert list(summary.columns) == ["n"] + MEASUREMENTS
        assert summary["n"].sum() == len(penguins)
        # Means are in the original units
        assert summary["body_mass_g"].max() > 4500


class TestElbowInertia:
    """Tests for elbow_inertia."""

    def test_decreasing(self, penguins):
        inertias = elbow_inertia(penguins, MEASUREMENTS, range(1, 6))

        assert len(inertias) == 5
        assert all(a >= b for a, b in zip(inertias, inertias[1:]))

    def test_stops_at_sample_size(self, penguins):
        inertias = elbow_inertia(penguins.iloc[:3], MEASUREMENTS, range(1, 6))
        assert len(inertias) == 3
