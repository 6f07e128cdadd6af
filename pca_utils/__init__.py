"""
PCA and Clustering Utility Modules for Penguin Analytics
=========================================================

Principal Component Analysis and k-means clustering of the penguin
measurements, plus the Plotly figures used by the PCA page.

Package Structure
-----------------
pca_calculations : PCA, k-means, cluster tables and elbow inertia
pca_plots        : Plotly-based visualization functions
config           : Package-level configuration constants

Quick Start
-----------
>>> from pca_utils import compute_pca, compute_kmeans, plot_clusters_2d
>>> from utils import load_clean_penguins, NUMERIC_COLUMNS
>>>
>>> data = load_clean_penguins()
>>> columns = NUMERIC_COLUMNS[:4]
>>> pca_results = compute_pca(data, columns)
>>> km = compute_kmeans(data, columns)
>>> fig = plot_clusters_2d(pca_results['scores'], km['labels'],
...                        pca_results['explained_variance_ratio'])
"""

# Import configuration constants
from .config import (
    DEFAULT_N_CLUSTERS,
    RANDOM_SEED,
    KMEANS_N_INIT,
    DEFAULT_SCALE,
    N_COMPONENTS_3D,
    ELBOW_K_RANGE,
)

# Import calculation functions
from .pca_calculations import (
    compute_pca,
    variance_table,
    pca_export_tables,
    compute_kmeans,
    add_cluster_column,
    cluster_crosstab,
    cluster_summary,
    elbow_inertia,
)

# Import plotting functions
from .pca_plots import (
    plot_scree,
    plot_cumulative_variance,
    plot_loadings,
    plot_clusters_2d,
    plot_clusters_3d,
    plot_elbow,
)

# Define public API
__all__ = [
    # Configuration constants
    'DEFAULT_N_CLUSTERS',
    'RANDOM_SEED',
    'KMEANS_N_INIT',
    'DEFAULT_SCALE',
    'N_COMPONENTS_3D',
    'ELBOW_K_RANGE',

    # Calculation functions
    'compute_pca',
    'variance_table',
    'pca_export_tables',
    'compute_kmeans',
    'add_cluster_column',
    'cluster_crosstab',
    'cluster_summary',
    'elbow_inertia',

    # Plotting functions
    'plot_scree',
    'plot_cumulative_variance',
    'plot_loadings',
    'plot_clusters_2d',
    'plot_clusters_3d',
    'plot_elbow',
]

# Package metadata
__version__ = '1.0.0'
__description__ = 'PCA and k-means utilities for the Palmer penguins data'
