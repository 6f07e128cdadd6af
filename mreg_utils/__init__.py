"""
Multiple Regression Utilities for Penguin Analytics
"""

from .mreg import (
    build_formula,
    fit_ols,
    information_criterion,
    model_terms,
    model_response,
    pretty_term,
    stepwise_selection,
    coefficient_table,
    model_summary,
    format_equation,
    add_fitted_column,
    compute_vif,
    durbin_watson_test,
    shapiro_wilk_test,
    detect_unusual_data,
    run_diagnostics,
    generate_report_card,
    compare_models,
    anova_comparison,
    plot_stepwise_path,
    plot_coefficients,
    plot_vif,
    plot_diagnostic_report,
    plot_actual_vs_fitted,
    plot_model_comparison,
    export_results_to_excel,
)

__all__ = [
    "build_formula",
    "fit_ols",
    "information_criterion",
    "model_terms",
    "model_response",
    "pretty_term",
    "stepwise_selection",
    "coefficient_table",
    "model_summary",
    "format_equation",
    "add_fitted_column",
    "compute_vif",
    "durbin_watson_test",
    "shapiro_wilk_test",
    "detect_unusual_data",
    "run_diagnostics",
    "generate_report_card",
    "compare_models",
    "anova_comparison",
    "plot_stepwise_path",
    "plot_coefficients",
    "plot_vif",
    "plot_diagnostic_report",
    "plot_actual_vs_fitted",
    "plot_model_comparison",
    "export_results_to_excel",
]

__version__ = "2.0.0"
