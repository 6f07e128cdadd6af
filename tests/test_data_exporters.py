"""
Tests for the download exporters.
"""

import io

import openpyxl
import pandas as pd
import plotly.graph_objects as go
import pytest

from utils.data_exporters import (
    dataframe_to_csv_bytes,
    dataframes_to_excel_bytes,
    figure_to_html,
    figure_to_png,
)


@pytest.fixture
def figure():
    return go.Figure(go.Scatter3d(x=[1, 2, 3], y=[3, 1, 2], z=[0, 1, 0], mode="markers"))


class TestFigureToHtml:
    """Tests for the standalone HTML export."""

    def test_self_contained(self, figure):
        """plotly.js is embedded, no CDN script is referenced."""
        html = figure_to_html(figure)

        assert html.lstrip().lower().startswith("<html")
        assert "</html>" in html
        assert 'src="https://cdn.plot.ly' not in html
        # The embedded bundle is several MB
        assert len(html) > 1_000_000
        assert "scatter3d" in html

    def test_title_does_not_modify_input(self, figure):
        html = figure_to_html(figure, title="Penguin clusters")

        assert "Penguin clusters" in html
        assert figure.layout.title.text is None


class TestFigureToPng:
    """Tests for the PNG export."""

    def test_uses_plotly_static_export(self, figure, monkeypatch):
        calls = {}

        def fake_to_image(self, format=None, width=None, height=None, scale=None, **kwargs):
            calls.update(format=format, width=width, height=height, scale=scale)
            return b"\x89PNG\r\n\x1a\nfake"

        monkeypatch.setattr(go.Figure, "to_image", fake_to_image)
        png = figure_to_png(figure, width=800, height=600, scale=1)

        assert png.startswith(b"\x89PNG")
        assert calls == {"format": "png", "width": 800, "height": 600, "scale": 1}


class TestTableExports:
    """Tests for CSV and Excel exports."""

    def test_csv_bytes(self):
        data = pd.DataFrame({"species": ["Adelie", "Gentoo"], "cluster": ["1", "2"]})
        csv = dataframe_to_csv_bytes(data)

        assert csv.decode("utf-8").splitlines() == ["species,cluster", "Adelie,1", "Gentoo,2"]

    def test_excel_sheets(self):
        sheets = {
            "Scores": pd.DataFrame({"PC1": [0.1, -0.1]}),
            "A very long sheet name that exceeds the limit": pd.DataFrame({"x": [1]}),
        }
        xlsx = dataframes_to_excel_bytes(sheets)
        wb = openpyxl.load_workbook(io.BytesIO(xlsx))

        assert wb.sheetnames == ["Scores", "A very long sheet name that exc"]
        assert wb["Scores"]["A1"].value == "PC1"
        assert wb["Scores"]["A2"].value == pytest.approx(0.1)
