"""
PCA & Clustering Page - Penguin Analytics

Principal Component Analysis and k-means clustering of the penguin
measurements with scree, 2D and 3D cluster plots.
"""

import streamlit as st
import pandas as pd

from logging_config import get_logger
from pca_utils import (
    DEFAULT_N_CLUSTERS,
    DEFAULT_SCALE,
    ELBOW_K_RANGE,
    N_COMPONENTS_3D,
    RANDOM_SEED,
    add_cluster_column,
    cluster_crosstab,
    cluster_summary,
    compute_kmeans,
    compute_pca,
    elbow_inertia,
    plot_clusters_2d,
    plot_clusters_3d,
    plot_cumulative_variance,
    plot_elbow,
    plot_loadings,
    pca_export_tables,
    plot_scree,
    variance_table,
)
from session_state_keys import (
    SESSION_KMEANS_RESULTS,
    SESSION_PCA_RESULTS,
    SESSION_PCA_SCALE,
    SESSION_PCA_VARIABLES,
)
from utils import (
    CSV_MIME,
    HTML_MIME,
    PNG_MIME,
    XLSX_MIME,
    dataframe_to_csv_bytes,
    dataframes_to_excel_bytes,
    figure_to_html,
    figure_to_png,
    get_numeric_columns,
    load_clean_penguins,
    load_raw_penguins,
    missing_value_summary,
)

logger = get_logger(__name__)


# ============================================================================
# CACHED DATA AND MODELS
# ============================================================================

@st.cache_data(show_spinner=False)
def _raw_data() -> pd.DataFrame:
    return load_raw_penguins()


@st.cache_data(show_spinner=False)
def _clean_data() -> pd.DataFrame:
    return load_clean_penguins()


@st.cache_data(show_spinner="Computing PCA...")
def _cached_pca(columns: tuple, scale: bool) -> dict:
    return compute_pca(_clean_data(), list(columns), scale=scale)


@st.cache_data(show_spinner="Running k-means...")
def _cached_kmeans(columns: tuple, scale: bool, n_clusters: int, seed: int) -> dict:
    return compute_kmeans(_clean_data(), list(columns), n_clusters=n_clusters,
                          random_state=seed, scale=scale)


@st.cache_data(show_spinner=False)
def _cached_elbow(columns: tuple, scale: bool, seed: int) -> list:
    return elbow_inertia(_clean_data(), list(columns), ELBOW_K_RANGE,
                         random_state=seed, scale=scale)


def _png_download(fig, file_name: str, key: str):
    """Render ``fig`` to PNG on demand and offer it for download."""
    if st.button("🖼️ Prepare PNG", key=f"{key}_prepare"):
        try:
            png = figure_to_png(fig)
        except Exception as e:
            logger.exception("PNG export failed for %s", file_name)
            st.warning(f"⚠️ PNG export unavailable: {e}")
            return
        st.download_button(
            "⬇️ Download PNG",
            png,
            file_name,
            PNG_MIME,
            key=f"{key}_download",
        )


# ============================================================================
# MAIN PAGE
# ============================================================================

def show():
    """
    PCA & Clustering page.

    Tabs:
    1. Data
    2. Scree Plot
    3. 2D Clusters
    4. 3D Clusters
    """
    st.markdown("# 🐧 PCA & Clustering")
    st.markdown("*Principal components and k-means on the Palmer penguins measurements*")

    try:
        raw = _raw_data()
        data = _clean_data()
    except Exception as e:
        logger.exception("Could not load the penguins dataset")
        st.error(f"❌ Could not load the penguins dataset: {e}")
        return

    numeric_cols = get_numeric_columns(data)

    # === SIDEBAR SETTINGS ===
    with st.sidebar:
        st.markdown("### ⚙️ PCA Settings")
        columns = st.multiselect(
            "Variables:",
            numeric_cols,
            default=numeric_cols,
            key=SESSION_PCA_VARIABLES,
        )
        scale = st.toggle(
            "Z-score variables",
            value=DEFAULT_SCALE,
            key=SESSION_PCA_SCALE,
            help="Standardize each variable to mean 0 and variance 1 before PCA and k-means",
        )
        st.markdown(f"**Clusters (k):** {DEFAULT_N_CLUSTERS}")
        st.markdown(f"**Random seed:** {RANDOM_SEED}")

    st.divider()

    tabs = st.tabs([
        "📋 Data",
        "📊 Scree Plot",
        "🎯 2D Clusters",
        "🧊 3D Clusters",
    ])

    # TAB 1: Data
    with tabs[0]:
        _show_data_tab(raw, data)

    if len(columns) < 2:
        for tab in tabs[1:]:
            with tab:
                st.info("Select at least 2 variables in the sidebar to run PCA.")
        return

    try:
        pca_results = _cached_pca(tuple(columns), scale)
        km_results = _cached_kmeans(tuple(columns), scale, DEFAULT_N_CLUSTERS, RANDOM_SEED)
    except Exception as e:
        logger.exception("PCA / k-means failed")
        st.error(f"❌ PCA / k-means failed: {e}")
        return

    st.session_state[SESSION_PCA_RESULTS] = pca_results
    st.session_state[SESSION_KMEANS_RESULTS] = km_results

    # TAB 2: Scree Plot
    with tabs[1]:
        _show_scree_tab(pca_results, columns, scale)

    # TAB 3: 2D Clusters
    with tabs[2]:
        _show_clusters_2d_tab(data, pca_results, km_results)

    # TAB 4: 3D Clusters
    with tabs[3]:
        _show_clusters_3d_tab(data, pca_results, km_results)


# ============================================================================
# TAB 1: DATA
# ============================================================================

def _show_data_tab(raw: pd.DataFrame, data: pd.DataFrame):
    st.markdown("## 📋 Cleaned Data")
    st.caption(
        "Missing numeric values are replaced by the column median and missing "
        "categorical values by the column mode."
    )

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Observations", len(data))
    with col2:
        st.metric("Variables", data.shape[1])
    with col3:
        st.metric("Imputed cells", int(raw.isna().sum().sum()))

    st.dataframe(data, height=350)

    st.markdown("### Missing Values")
    summary = missing_value_summary(raw)
    summary["Imputed with"] = summary["Imputed with"].astype(object).where(
        summary["Imputed with"].notna(), "")
    st.dataframe(summary, hide_index=True)

    st.download_button(
        "📥 Download cleaned data (CSV)",
        dataframe_to_csv_bytes(data),
        "penguins_clean.csv",
        CSV_MIME,
        key="pca_clean_csv",
    )


# ============================================================================
# TAB 2: SCREE PLOT
# ============================================================================

def _show_scree_tab(pca_results: dict, columns: list, scale: bool):
    st.markdown("## 📊 Variance Explained")
    st.caption(f"{len(columns)} variables, {'z-scored' if scale else 'centered only'}")

    fig_scree = plot_scree(pca_results['explained_variance_ratio'])
    st.plotly_chart(fig_scree, key="pca_scree_chart")
    _png_download(fig_scree, "scree_plot.png", key="pca_scree_png")

    col1, col2 = st.columns(2)
    with col1:
        fig_cum = plot_cumulative_variance(pca_results['cumulative_variance'])
        st.plotly_chart(fig_cum, key="pca_cumulative_chart")
    with col2:
        fig_load = plot_loadings(pca_results['loadings'], 'PC1', 'PC2',
                                 pca_results['explained_variance_ratio'])
        st.plotly_chart(fig_load, key="pca_loadings_chart")

    st.markdown("### Variance Table")
    st.dataframe(
        variance_table(pca_results).style.format({
            'Eigenvalue': '{:.4f}',
            'Variance (%)': '{:.2f}',
            'Cumulative (%)': '{:.2f}',
        }),
        hide_index=True,
    )

    st.markdown("### Loadings")
    st.dataframe(pca_results['loadings'].style.format('{:.4f}'))

    st.download_button(
        "📥 Download variance, loadings and scores (Excel)",
        dataframes_to_excel_bytes(pca_export_tables(pca_results)),
        "pca_results.xlsx",
        XLSX_MIME,
        key="pca_results_xlsx",
    )


# ============================================================================
# TAB 3: 2D CLUSTERS
# ============================================================================

def _show_clusters_2d_tab(data: pd.DataFrame, pca_results: dict, km_results: dict):
    st.markdown("## 🎯 K-means Clusters on PC1 vs PC2")

    labels = km_results['labels']
    show_species = st.checkbox("Species as marker symbol", value=True, key="pca_symbol_species")

    fig_2d = plot_clusters_2d(
        pca_results['scores'],
        labels,
        pca_results['explained_variance_ratio'],
        symbol_by=data['species'] if show_species else None,
    )
    st.plotly_chart(fig_2d, key="pca_clusters_2d_chart")
    _png_download(fig_2d, "clusters_2d.png", key="pca_2d_png")

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("### Cluster vs Species")
        st.dataframe(cluster_crosstab(labels, data['species']))
    with col2:
        st.markdown("### Cluster Means")
        st.dataframe(
            cluster_summary(data, labels, km_results['columns']).style.format(
                '{:.2f}', subset=km_results['columns']),
        )

    st.metric("Within-cluster sum of squares", f"{km_results['inertia']:.2f}")

    with st.expander("📉 Elbow plot", expanded=False):
        inertias = _cached_elbow(tuple(km_results['columns']), km_results['scaled'],
                                 km_results['random_state'])
        st.plotly_chart(plot_elbow(ELBOW_K_RANGE, inertias, chosen_k=km_results['n_clusters']),
                        key="pca_elbow_chart")
        st.caption(f"The cluster count is fixed at k = {km_results['n_clusters']}.")

    st.download_button(
        "📥 Download data with cluster labels (CSV)",
        dataframe_to_csv_bytes(add_cluster_column(data, labels)),
        "penguins_clusters.csv",
        CSV_MIME,
        key="pca_clusters_csv",
    )


# ============================================================================
# TAB 4: 3D CLUSTERS
# ============================================================================

def _show_clusters_3d_tab(data: pd.DataFrame, pca_results: dict, km_results: dict):
    st.markdown("## 🧊 K-means Clusters in 3D")

    if pca_results['scores'].shape[1] < N_COMPONENTS_3D:
        st.info(f"Select at least {N_COMPONENTS_3D} variables to show the 3D plot.")
        return

    fig_3d = plot_clusters_3d(
        pca_results['scores'],
        km_results['labels'],
        pca_results['explained_variance_ratio'],
        hover_text=data['species'],
    )
    st.plotly_chart(fig_3d, key="pca_clusters_3d_chart")

    st.download_button(
        "📥 Download interactive plot (HTML)",
        figure_to_html(fig_3d),
        "clusters_3d.html",
        HTML_MIME,
        key="pca_3d_html",
    )
