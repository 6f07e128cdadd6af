"""
Data handling utility modules for Penguin Analytics
"""

from .data_loaders import (
    PENGUIN_COLUMNS,
    NUMERIC_COLUMNS,
    CATEGORICAL_COLUMNS,
    load_raw_penguins,
    load_clean_penguins,
    impute_missing,
    missing_value_summary,
    scale_numeric,
    get_numeric_columns,
    get_categorical_columns,
)

from .data_exporters import (
    PNG_MIME,
    HTML_MIME,
    CSV_MIME,
    XLSX_MIME,
    figure_to_png,
    figure_to_html,
    dataframe_to_csv_bytes,
    dataframes_to_excel_bytes,
)

__all__ = [
    # Loaders
    'PENGUIN_COLUMNS',
    'NUMERIC_COLUMNS',
    'CATEGORICAL_COLUMNS',
    'load_raw_penguins',
    'load_clean_penguins',
    'impute_missing',
    'missing_value_summary',
    'scale_numeric',
    'get_numeric_columns',
    'get_categorical_columns',
    # Exporters
    'PNG_MIME',
    'HTML_MIME',
    'CSV_MIME',
    'XLSX_MIME',
    'figure_to_png',
    'figure_to_html',
    'dataframe_to_csv_bytes',
    'dataframes_to_excel_bytes',
]
