"""
PCA and Clustering Calculation Functions

Thin wrappers around scikit-learn's PCA and KMeans that return results in a
format suited to Streamlit session state and the plotting helpers in
``pca_plots``.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from logging_config import get_logger
from utils.data_loaders import scale_numeric

from .config import DEFAULT_N_CLUSTERS, DEFAULT_SCALE, KMEANS_N_INIT, RANDOM_SEED

logger = get_logger(__name__)


def _prepare_matrix(data: pd.DataFrame, columns: Sequence[str], scale: bool) -> pd.DataFrame:
    """Select ``columns``, check they are usable, optionally z-score them."""
    columns = list(columns)
    missing = [c for c in columns if c not in data.columns]
    if missing:
        raise ValueError(f"Unknown columns: {', '.join(missing)}")
    if len(columns) < 2:
        raise ValueError("Select at least 2 numeric variables")
    if len(data) < 2:
        raise ValueError("Need at least 2 observations")

    X = data[columns].apply(pd.to_numeric, errors="coerce")
    if X.isna().any().any():
        raise ValueError("Selected variables contain missing values; impute them first")
    if scale:
        X = scale_numeric(X, columns)
    return X.astype(float)


def compute_pca(
    data: pd.DataFrame,
    columns: Sequence[str],
    n_components: Optional[int] = None,
    scale: bool = DEFAULT_SCALE,
) -> Dict[str, Any]:
    """
    Principal Component Analysis of the selected numeric columns.

    Parameters
    ----------
    data : pd.DataFrame
        Imputed dataset.
    columns : sequence of str
        Numeric variables to analyse.
    n_components : int, optional
        Number of components. Defaults to ``min(n_rows, n_columns)``.
    scale : bool
        Z-score the variables first (correlation-matrix PCA).

    Returns
    -------
    dict
        - 'scores' : pd.DataFrame - PC scores, indexed like ``data``
        - 'loadings' : pd.DataFrame - variables x PCs
        - 'eigenvalues' : np.ndarray - variance of each PC
        - 'explained_variance_ratio' : np.ndarray - proportion (0-1)
        - 'cumulative_variance' : np.ndarray - cumulative proportion (0-1)
        - 'columns' : list - analysed variables
        - 'scaled' : bool
        - 'model' : fitted ``sklearn.decomposition.PCA``
    """
    X = _prepare_matrix(data, columns, scale)
    max_components = min(X.shape)
    if n_components is None:
        n_components = max_components
    if not 1 <= n_components <= max_components:
        raise ValueError(
            f"n_components must be between 1 and {max_components}, got {n_components}"
        )

    model = PCA(n_components=n_components)
    scores_array = model.fit_transform(X.to_numpy())

    pc_names = [f"PC{i + 1}" for i in range(n_components)]
    scores = pd.DataFrame(scores_array, columns=pc_names, index=data.index)
    loadings = pd.DataFrame(model.components_.T, columns=pc_names, index=list(columns))

    ratio = model.explained_variance_ratio_
    logger.info(
        "PCA on %d variables (scaled=%s): PC1 explains %.1f%%",
        len(columns), scale, ratio[0] * 100,
    )

    return {
        "scores": scores,
        "loadings": loadings,
        "eigenvalues": model.explained_variance_,
        "explained_variance_ratio": ratio,
        "cumulative_variance": np.cumsum(ratio),
        "columns": list(columns),
        "scaled": scale,
        "model": model,
    }


def variance_table(pca_results: Dict[str, Any]) -> pd.DataFrame:
    """Eigenvalue, % variance and cumulative % per component."""
    pcs = pca_results["scores"].columns
    return pd.DataFrame({
        "Component": pcs,
        "Eigenvalue": pca_results["eigenvalues"],
        "Variance (%)": pca_results["explained_variance_ratio"] * 100,
        "Cumulative (%)": pca_results["cumulative_variance"] * 100,
    })


def pca_export_tables(pca_results: Dict[str, Any]) -> Dict[str, pd.DataFrame]:
    """Variance table, loadings and scores keyed by sheet name."""
    return {
        "Variance": variance_table(pca_results),
        "Loadings": pca_results["loadings"].rename_axis("Variable").reset_index(),
        "Scores": pca_results["scores"],
    }


def compute_kmeans(
    data: pd.DataFrame,
    columns: Sequence[str],
    n_clusters: int = DEFAULT_N_CLUSTERS,
    random_state: int = RANDOM_SEED,
    scale: bool = DEFAULT_SCALE,
) -> Dict[str, Any]:
    """
    K-means clustering of the selected numeric columns.

    Parameters
    ----------
    data : pd.DataFrame
        Imputed dataset.
    columns : sequence of str
        Variables defining the clustering space.
    n_clusters : int
        Number of clusters.
    random_state : int
        Seed for centroid initialisation.
    scale : bool
        Z-score the variables first.

    Returns
    -------
    dict
        - 'labels' : pd.Series named 'cluster' with labels "1".."k"
        - 'centers' : pd.DataFrame - cluster centres in the original units
        - 'inertia' : float - within-cluster sum of squares
        - 'n_clusters', 'random_state', 'columns', 'scaled'
        - 'model' : fitted ``sklearn.cluster.KMeans``
    """
    X = _prepare_matrix(data, columns, scale)
    if not 1 <= n_clusters <= len(X):
        raise ValueError(f"n_clusters must be between 1 and {len(X)}, got {n_clusters}")

    model = KMeans(n_clusters=n_clusters, n_init=KMEANS_N_INIT, random_state=random_state)
    raw_labels = model.fit_predict(X.to_numpy())

    labels = pd.Series(
        [str(label + 1) for label in raw_labels],
        index=data.index,
        name="cluster",
    )
    centers_values = model.cluster_centers_
    if scale:
        # Back from z-scores to the measurement units
        scaler = StandardScaler().fit(data[list(columns)].to_numpy(dtype=float))
        centers_values = scaler.inverse_transform(centers_values)

    cluster_names = [str(i + 1) for i in range(n_clusters)]
    centers = pd.DataFrame(centers_values, columns=list(columns), index=cluster_names)
    centers.index.name = "cluster"

    logger.info(
        "K-means: k=%d, seed=%d, inertia=%.3f, sizes=%s",
        n_clusters, random_state, model.inertia_,
        labels.value_counts().sort_index().to_dict(),
    )

    return {
        "labels": labels,
        "centers": centers,
        "inertia": float(model.inertia_),
        "n_clusters": n_clusters,
        "random_state": random_state,
        "columns": list(columns),
        "scaled": scale,
        "model": model,
    }


def add_cluster_column(
    data: pd.DataFrame,
    labels: pd.Series,
    name: str = "cluster",
) -> pd.DataFrame:
    """Return a copy of ``data`` with the cluster labels appended."""
    if len(labels) != len(data):
        raise ValueError("Labels and data have different lengths")
    augmented = data.copy()
    augmented[name] = np.asarray(labels)
    return augmented


def cluster_crosstab(labels: pd.Series, reference: pd.Series) -> pd.DataFrame:
    """
    Contingency table of cluster labels against a categorical column.

    Useful to see how well the clusters recover the species.
    """
    return pd.crosstab(
        np.asarray(labels),
        np.asarray(reference),
        rownames=["cluster"],
        colnames=[getattr(reference, "name", None) or "reference"],
    )


def cluster_summary(
    data: pd.DataFrame,
    labels: pd.Series,
    columns: Iterable[str],
) -> pd.DataFrame:
    """Size and per-variable mean of each cluster, in the original units."""
    columns = list(columns)
    keys = pd.Series(np.asarray(labels), index=data.index, name="cluster")
    grouped = data[columns].groupby(keys)
    summary = grouped.mean()
    summary.insert(0, "n", grouped.size())
    return summary


def elbow_inertia(
    data: pd.DataFrame,
    columns: Sequence[str],
    k_values: Iterable[int],
    random_state: int = RANDOM_SEED,
    scale: bool = DEFAULT_SCALE,
) -> List[float]:
    """Within-cluster sum of squares for each k in ``k_values``."""
    X = _prepare_matrix(data, columns, scale).to_numpy()
    inertias = []
    for k in k_values:
        if k > len(X):
            break
        model = KMeans(n_clusters=k, n_init=KMEANS_N_INIT, random_state=random_state)
        model.fit(X)
        inertias.append(float(model.inertia_))
    return inertias
