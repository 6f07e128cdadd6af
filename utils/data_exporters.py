"""
Export functions for download buttons
Figures to PNG / standalone HTML, tables to CSV / Excel
"""

import io
from typing import Dict, Optional

import pandas as pd
import plotly.graph_objects as go

from logging_config import get_logger

logger = get_logger(__name__)

PNG_MIME = "image/png"
HTML_MIME = "text/html"
CSV_MIME = "text/csv"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def figure_to_png(
    fig: go.Figure,
    width: int = 1000,
    height: int = 650,
    scale: float = 2,
) -> bytes:
    """
    Render a plotly figure to PNG bytes.

    Uses plotly's static image export (kaleido engine).

    Parameters
    ----------
    fig : go.Figure
        Figure to render.
    width, height : int
        Image size in layout pixels.
    scale : float
        Resolution multiplier.

    Returns
    -------
    bytes
        PNG image.
    """
    logger.debug("Rendering figure to PNG (%dx%d, scale=%s)", width, height, scale)
    return fig.to_image(format="png", width=width, height=height, scale=scale)


def figure_to_html(fig: go.Figure, title: Optional[str] = None) -> str:
    """
    Render a plotly figure to a complete HTML document.

    plotly.js is embedded in the page so the file works offline.
    """
    if title:
        fig = go.Figure(fig)
        fig.update_layout(title=title)
    return fig.to_html(full_html=True, include_plotlyjs=True)


def dataframe_to_csv_bytes(data: pd.DataFrame, index: bool = False) -> bytes:
    """CSV encoding of a table, UTF-8."""
    return data.to_csv(index=index).encode("utf-8")


def dataframes_to_excel_bytes(sheets: Dict[str, pd.DataFrame], index: bool = False) -> bytes:
    """
    Write several tables to one workbook, one sheet per entry.

    Sheet names are truncated to Excel's 31 character limit.
    """
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=str(name)[:31], index=index)
    buffer.seek(0)
    return buffer.getvalue()
