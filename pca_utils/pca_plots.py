"""
PCA Plotting Functions

Visualization functions for Principal Component Analysis and k-means results.
Includes scree plots, loading plots and 2D / 3D cluster plots.
"""

from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from color_utils import create_categorical_color_map

from .config import CUMULATIVE_REFERENCE_LINES


def _component_labels(n: int) -> List[str]:
    return [f'PC{i + 1}' for i in range(n)]


def _variance_of(scores: pd.DataFrame, pc: str, explained_variance_ratio: np.ndarray) -> float:
    return explained_variance_ratio[scores.columns.get_loc(pc)] * 100


def plot_scree(
    explained_variance_ratio: np.ndarray,
    component_labels: Optional[List[str]] = None
) -> go.Figure:
    """
    Create scree plot showing variance explained by each component.

    Parameters
    ----------
    explained_variance_ratio : np.ndarray
        Variance explained ratio of each component (0-1 scale).
    component_labels : List[str], optional
        Custom labels for components. If None, uses PC1, PC2, etc.

    Returns
    -------
    go.Figure
        Bars for each component with a connecting line.

    Examples
    --------
    >>> var_ratio = np.array([0.69, 0.19, 0.09, 0.03])
    >>> fig = plot_scree(var_ratio)
    """
    pct = np.asarray(explained_variance_ratio) * 100
    if component_labels is None:
        component_labels = _component_labels(len(pct))

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=component_labels,
        y=pct,
        name='Variance Explained',
        marker_color='steelblue',
        text=[f'{v:.1f}%' for v in pct],
        textposition='outside',
    ))
    fig.add_trace(go.Scatter(
        x=component_labels,
        y=pct,
        mode='lines+markers',
        name='Scree',
        line=dict(color='red', width=2),
        marker=dict(size=8, symbol='circle')
    ))

    fig.update_layout(
        title="Scree Plot - Variance Explained (Principal Components)",
        xaxis_title="Principal Component",
        yaxis_title="Variance Explained (%)",
        yaxis=dict(range=[0, max(pct.max() * 1.15, 10) if len(pct) else 100]),
        showlegend=False,
        template='plotly_white',
        height=500
    )

    return fig


def plot_cumulative_variance(
    cumulative_variance: np.ndarray,
    component_labels: Optional[List[str]] = None,
    reference_lines: Optional[Sequence[float]] = None
) -> go.Figure:
    """
    Create cumulative variance plot.

    Parameters
    ----------
    cumulative_variance : np.ndarray
        Cumulative variance explained (0-1 scale).
    component_labels : List[str], optional
        Custom labels for components. If None, auto-generated.
    reference_lines : sequence of float, optional
        Y-values (%) for reference lines. Default is 80 and 95.

    Returns
    -------
    go.Figure
    """
    if component_labels is None:
        component_labels = _component_labels(len(cumulative_variance))
    if reference_lines is None:
        reference_lines = CUMULATIVE_REFERENCE_LINES

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=component_labels,
        y=np.asarray(cumulative_variance) * 100,
        mode='lines+markers',
        name='Cumulative Variance',
        line=dict(color='blue', width=3),
        marker=dict(size=10),
        fill='tozeroy'
    ))

    for threshold in reference_lines:
        fig.add_hline(
            y=threshold,
            line_dash="dash",
            line_color="red" if threshold == min(reference_lines) else "orange",
            annotation_text=f"{threshold}%"
        )

    fig.update_layout(
        title="Cumulative Variance Explained",
        xaxis_title="Principal Component",
        yaxis_title="Cumulative Variance (%)",
        yaxis=dict(range=[0, 105]),
        template='plotly_white',
        height=500
    )

    return fig


def plot_loadings(
    loadings: pd.DataFrame,
    pc_x: str = 'PC1',
    pc_y: str = 'PC2',
    explained_variance_ratio: Optional[np.ndarray] = None
) -> go.Figure:
    """
    Loading plot: one arrow from the origin per variable.

    Parameters
    ----------
    loadings : pd.DataFrame
        Variables x PCs.
    pc_x, pc_y : str
        Components on the axes.
    explained_variance_ratio : np.ndarray, optional
        Adds the % variance of each axis to its title.
    """
    if explained_variance_ratio is not None:
        var_x = explained_variance_ratio[loadings.columns.get_loc(pc_x)] * 100
        var_y = explained_variance_ratio[loadings.columns.get_loc(pc_y)] * 100
        x_title = f'{pc_x} Loadings ({var_x:.1f}%)'
        y_title = f'{pc_y} Loadings ({var_y:.1f}%)'
    else:
        x_title, y_title = f'{pc_x} Loadings', f'{pc_y} Loadings'

    fig = go.Figure()
    for var_name, row in loadings.iterrows():
        fig.add_trace(go.Scatter(
            x=[0, row[pc_x]],
            y=[0, row[pc_y]],
            mode='lines+markers+text',
            text=[None, var_name],
            textposition='top center',
            line=dict(color='crimson', width=2),
            marker=dict(size=[0, 7], color='crimson'),
            showlegend=False,
            hovertemplate=f'{var_name}<br>{pc_x}: %{{x:.3f}}<br>{pc_y}: %{{y:.3f}}<extra></extra>',
        ))

    max_abs = float(np.abs(loadings[[pc_x, pc_y]].to_numpy()).max()) if len(loadings) else 1.0
    axis_range = [-max_abs * 1.25, max_abs * 1.25]

    fig.add_hline(y=0, line_dash="dash", line_color="gray", opacity=0.7)
    fig.add_vline(x=0, line_dash="dash", line_color="gray", opacity=0.7)

    fig.update_layout(
        title=dict(text=f"Loading Plot: {pc_x} vs {pc_y}", x=0.5, xanchor='center'),
        xaxis=dict(title=x_title, range=axis_range, scaleanchor="y", scaleratio=1, constrain="domain"),
        yaxis=dict(title=y_title, range=axis_range, constrain="domain"),
        height=550,
        template='plotly_white'
    )

    return fig


def plot_clusters_2d(
    scores: pd.DataFrame,
    labels: pd.Series,
    explained_variance_ratio: np.ndarray,
    pc_x: str = 'PC1',
    pc_y: str = 'PC2',
    symbol_by: Optional[pd.Series] = None
) -> go.Figure:
    """
    Scores scatter plot coloured by cluster.

    Parameters
    ----------
    scores : pd.DataFrame
        PCA scores with PC columns.
    labels : pd.Series
        Cluster label of each observation (same order as ``scores``).
    explained_variance_ratio : np.ndarray
        Variance explained ratios, used for axis titles.
    pc_x, pc_y : str
        Components on the axes.
    symbol_by : pd.Series, optional
        Categorical column (e.g. species) mapped to marker symbols.

    Returns
    -------
    go.Figure
    """
    var_x = _variance_of(scores, pc_x, explained_variance_ratio)
    var_y = _variance_of(scores, pc_y, explained_variance_ratio)

    plot_df = pd.DataFrame({
        pc_x: scores[pc_x].to_numpy(),
        pc_y: scores[pc_y].to_numpy(),
        'Cluster': np.asarray(labels).astype(str),
    })
    symbol_name = None
    if symbol_by is not None:
        symbol_name = getattr(symbol_by, 'name', None) or 'group'
        plot_df[symbol_name] = np.asarray(symbol_by).astype(str)

    color_map = create_categorical_color_map(plot_df['Cluster'].unique())

    fig = px.scatter(
        plot_df,
        x=pc_x,
        y=pc_y,
        color='Cluster',
        symbol=symbol_name,
        color_discrete_map=color_map,
        category_orders={'Cluster': list(color_map)},
        labels={pc_x: f'{pc_x} ({var_x:.1f}%)', pc_y: f'{pc_y} ({var_y:.1f}%)'},
    )
    fig.update_traces(marker=dict(size=8, opacity=0.8, line=dict(width=0.5, color='white')))

    fig.add_hline(y=0, line_dash="dash", line_color="gray", opacity=0.7)
    fig.add_vline(x=0, line_dash="dash", line_color="gray", opacity=0.7)

    fig.update_layout(
        title=dict(
            text=f"K-means Clusters on {pc_x} vs {pc_y}<br>Total Explained Variance: {var_x + var_y:.1f}%",
            x=0.5,
            xanchor='center',
            font=dict(size=14, color='#333')
        ),
        height=600,
        margin=dict(l=60, r=60, t=80, b=60),
        legend=dict(
            x=0.99,
            y=0.99,
            xanchor='right',
            yanchor='top',
            bgcolor='rgba(255, 255, 255, 0.9)',
            borderwidth=0,
            font=dict(size=10)
        ),
        hovermode='closest',
        template='plotly_white'
    )

    return fig


def plot_clusters_3d(
    scores: pd.DataFrame,
    labels: pd.Series,
    explained_variance_ratio: np.ndarray,
    pcs: Sequence[str] = ('PC1', 'PC2', 'PC3'),
    hover_text: Optional[pd.Series] = None
) -> go.Figure:
    """
    Interactive 3D scatter of three PCs coloured by cluster.

    Raises
    ------
    ValueError
        If ``scores`` has fewer than three of the requested components.
    """
    pcs = list(pcs)
    if len(pcs) != 3 or any(pc not in scores.columns for pc in pcs):
        raise ValueError(f"3D plot needs components {pcs}; available: {list(scores.columns)}")

    label_arr = np.asarray(labels).astype(str)
    color_map = create_categorical_color_map(np.unique(label_arr))
    axis_titles = [f'{pc} ({_variance_of(scores, pc, explained_variance_ratio):.1f}%)' for pc in pcs]
    text_arr = np.asarray(hover_text).astype(str) if hover_text is not None else None

    fig = go.Figure()
    for cluster in color_map:
        mask = label_arr == cluster
        fig.add_trace(go.Scatter3d(
            x=scores.loc[mask, pcs[0]],
            y=scores.loc[mask, pcs[1]],
            z=scores.loc[mask, pcs[2]],
            mode='markers',
            name=f'Cluster {cluster}',
            text=text_arr[mask] if text_arr is not None else None,
            marker=dict(size=4, color=color_map[cluster], opacity=0.85),
            hovertemplate=(
                (f'%{{text}}<br>' if text_arr is not None else '')
                + f'{pcs[0]}: %{{x:.2f}}<br>{pcs[1]}: %{{y:.2f}}<br>{pcs[2]}: %{{z:.2f}}'
                + f'<extra>Cluster {cluster}</extra>'
            ),
        ))

    fig.update_layout(
        title=dict(text="K-means Clusters in 3D PCA Space", x=0.5, xanchor='center'),
        scene=dict(
            xaxis_title=axis_titles[0],
            yaxis_title=axis_titles[1],
            zaxis_title=axis_titles[2],
        ),
        height=700,
        margin=dict(l=0, r=0, t=60, b=0),
        legend=dict(x=0.01, y=0.99),
        template='plotly_white'
    )

    return fig


def plot_elbow(k_values: Sequence[int], inertias: Sequence[float], chosen_k: Optional[int] = None) -> go.Figure:
    """Within-cluster sum of squares against k, with the chosen k marked."""
    k_values = list(k_values)[:len(inertias)]
    fig = go.Figure(go.Scatter(
        x=k_values,
        y=list(inertias),
        mode='lines+markers',
        line=dict(color='steelblue', width=2),
        marker=dict(size=8),
    ))
    if chosen_k is not None and chosen_k in k_values:
        fig.add_vline(x=chosen_k, line_dash="dash", line_color="red",
                      annotation_text=f"k = {chosen_k}")
    fig.update_layout(
        title="Elbow Plot (K-means)",
        xaxis_title="Number of Clusters (k)",
        yaxis_title="Within-cluster Sum of Squares",
        xaxis=dict(dtick=1),
        template='plotly_white',
        height=400
    )
    return fig
