"""
Regression Page - Penguin Analytics
OLS models, stepwise selection by AIC/BIC, diagnostics and model comparison
"""

import streamlit as st
import pandas as pd
import textwrap

from logging_config import get_logger
from mreg_utils.config import CRITERIA, DEFAULT_RESPONSE, STEPWISE_DIRECTIONS, VIF_THRESHOLD
from mreg_utils.mreg import (
    add_fitted_column,
    anova_comparison,
    coefficient_table,
    compare_models,
    export_results_to_excel,
    fit_ols,
    format_equation,
    generate_report_card,
    model_response,
    model_summary,
    plot_actual_vs_fitted,
    plot_coefficients,
    plot_diagnostic_report,
    plot_model_comparison,
    plot_stepwise_path,
    plot_vif,
    run_diagnostics,
    stepwise_selection,
)
from session_state_keys import (
    SESSION_MREG_CURRENT,
    SESSION_MREG_PREDICTORS,
    SESSION_MREG_RESPONSE,
    SESSION_MREG_SAVED_MODELS,
    SESSION_MREG_STEPWISE,
)
from utils import (
    CSV_MIME,
    PNG_MIME,
    XLSX_MIME,
    dataframe_to_csv_bytes,
    figure_to_png,
    get_numeric_columns,
    load_clean_penguins,
)
from utils.data_loaders import ID_LIKE_COLUMNS

logger = get_logger(__name__)


@st.cache_data(show_spinner=False)
def _clean_data() -> pd.DataFrame:
    return load_clean_penguins()


# ─────────────────────────────────────────────────────────────────────────────
# Helper: dedent HTML so Streamlit doesn't treat indentation as code blocks
# ─────────────────────────────────────────────────────────────────────────────

def _html(raw: str) -> str:
    """Strip leading whitespace from every line to prevent markdown code blocks."""
    return textwrap.dedent(raw).strip()


# ─────────────────────────────────────────────────────────────────────────────
# HTML rendering helpers
# ─────────────────────────────────────────────────────────────────────────────

_STATUS_ICONS = {
    "ok":      '<span style="display:inline-block;width:28px;height:28px;border-radius:4px;background:#2e7d32;color:white;text-align:center;line-height:28px;font-size:18px;">&#10003;</span>',
    "warning": '<span style="display:inline-block;width:28px;height:28px;background:#f9a825;border-radius:4px;color:#333;text-align:center;line-height:28px;font-size:16px;font-weight:bold;">&#9888;</span>',
    "info":    '<span style="display:inline-block;width:28px;height:28px;border-radius:50%;background:#1565c0;color:white;text-align:center;line-height:28px;font-size:16px;font-weight:bold;">i</span>',
}

_DIRECTION_LABELS = {
    "both": "Both (add or drop)",
    "forward": "Forward (add only)",
    "backward": "Backward (drop only)",
}


def _render_title(response_name, subtitle):
    st.markdown(_html(f"""
    <div style="background:#1f3864;color:white;padding:10px 18px;border-radius:6px 6px 0 0;text-align:center;">
    <div style="font-size:16px;font-weight:bold;">Multiple Regression for {response_name}</div>
    <div style="font-size:13px;">{subtitle}</div>
    </div>
    """), unsafe_allow_html=True)


def _render_report_card(checks, response_name):
    """Render the report card as an HTML table."""
    _render_title(response_name, "Report Card")

    rows_html = ""
    for c in checks:
        icon = _STATUS_ICONS.get(c["status"], _STATUS_ICONS["info"])
        desc = c["description"].replace("\n", "<br>").replace("• ", "&bull; ")
        rows_html += (
            f'<tr style="border-top:1px solid #ccc;">'
            f'<td style="padding:10px 8px;vertical-align:top;font-weight:bold;">{c["check"]}</td>'
            f'<td style="padding:10px 8px;vertical-align:top;text-align:center;">{icon}</td>'
            f'<td style="padding:10px 8px;vertical-align:top;line-height:1.5;">{desc}</td>'
            f'</tr>'
        )

    table_html = (
        '<div style="border:1px solid #ccc;border-top:none;padding:0;background:#f8f9fa;">'
        '<table style="width:100%;font-size:13px;border-collapse:collapse;">'
        '<tr style="background:#d6dce4;font-weight:bold;">'
        '<td style="padding:8px;width:120px;">Check</td>'
        '<td style="padding:8px;width:50px;text-align:center;">Status</td>'
        '<td style="padding:8px;">Description</td>'
        '</tr>'
        f'{rows_html}'
        '</table></div>'
    )
    st.markdown(table_html, unsafe_allow_html=True)


def _next_model_name(saved):
    """First "Model N" not already used by a saved model."""
    i = len(saved) + 1
    while f"Model {i}" in saved:
        i += 1
    return f"Model {i}"


def _render_equation(equation):
    st.markdown(
        f'<div style="font-weight:bold;font-size:13px;margin:12px 0 4px;">Model Equation</div>'
        f'<div style="font-family:monospace;font-size:12px;background:#f0f0f0;'
        f'padding:8px;border-radius:4px;overflow-x:auto;">{equation}</div>',
        unsafe_allow_html=True,
    )


def _render_model_summary(model, response_name, key_prefix):
    """Metrics, equation, coefficient table and chart of one model."""
    summary = model_summary(model)

    c1, c2, c3, c4, c5 = st.columns(5)
    with c1:
        st.metric("R²", f"{summary['r_squared'] * 100:.2f}%")
    with c2:
        st.metric("R²(adj)", f"{summary['r_squared_adj'] * 100:.2f}%")
    with c3:
        st.metric("S", f"{summary['s']:.3f}")
    with c4:
        st.metric("AIC", f"{summary['aic']:.2f}")
    with c5:
        st.metric("BIC", f"{summary['bic']:.2f}")

    if summary["k"] > 0:
        st.caption(
            f"n = {summary['n']}, F = {summary['f_statistic']:.2f} on {summary['k']} and "
            f"{summary['df_resid']:.0f} DF, p = {summary['f_p_value']:.3g}"
        )
    else:
        st.caption(f"n = {summary['n']}, intercept-only model")

    _render_equation(format_equation(response_name, model))

    col_table, col_chart = st.columns([3, 2])
    with col_table:
        coef_df = coefficient_table(model)
        st.dataframe(
            coef_df.style.format({c: "{:.4f}" for c in coef_df.columns if c != "Term"}),
            hide_index=True,
        )
    with col_chart:
        st.plotly_chart(plot_coefficients(model), key=f"{key_prefix}_coef_chart")


# ─────────────────────────────────────────────────────────────────────────────
# MAIN PAGE
# ─────────────────────────────────────────────────────────────────────────────

def show():
    st.markdown("# 📈 Regression")
    st.markdown("**Linear models for the penguin measurements: OLS, stepwise AIC/BIC, diagnostics**")
    st.markdown("---")

    try:
        data = _clean_data()
    except Exception as e:
        logger.exception("Could not load the penguins dataset")
        st.error(f"❌ Could not load the penguins dataset: {e}")
        return

    # ==================================================================
    # VARIABLE SELECTION
    # ==================================================================
    st.markdown("### Variable Selection")

    numeric_cols = get_numeric_columns(data)
    default_idx = numeric_cols.index(DEFAULT_RESPONSE) if DEFAULT_RESPONSE in numeric_cols else 0

    col_resp, col_pred = st.columns([1, 3])
    with col_resp:
        response_var = st.selectbox("**Response:**", numeric_cols, index=default_idx,
                                    key=SESSION_MREG_RESPONSE)
    with col_pred:
        available_predictors = [c for c in data.columns if c != response_var]
        default_predictors = [c for c in available_predictors if c not in ID_LIKE_COLUMNS]
        predictors = st.multiselect(
            "**Predictors:**",
            available_predictors,
            default=default_predictors,
            key=SESSION_MREG_PREDICTORS,
        )
        # Widget state survives a response change; drop a stale response from the list
        predictors = [p for p in predictors if p != response_var]

    if not predictors:
        st.info("Select at least one predictor to continue.")
        return

    tab_build, tab_step, tab_diag, tab_compare = st.tabs([
        "🏗️ Build Model",
        "🪜 Stepwise",
        "🔍 Diagnostics",
        "⚖️ Compare",
    ])

    with tab_build:
        _show_build_tab(data, response_var, predictors)

    with tab_step:
        _show_stepwise_tab(data, response_var, predictors)

    with tab_diag:
        _show_diagnostics_tab()

    with tab_compare:
        _show_compare_tab()

    st.caption("Data: Palmer penguins (Gorman, Williams & Fraser, 2014)")


# ==================== BUILD MODEL ====================

def _show_build_tab(data, response_var, predictors):
    if st.button("🚀 Fit OLS Model", type="primary", key="mreg_fit"):
        with st.spinner("Fitting model..."):
            try:
                model = fit_ols(data, response_var, predictors)
                st.session_state[SESSION_MREG_CURRENT] = {
                    "model": model,
                    "response": response_var,
                    "predictors": list(predictors),
                    "source": "manual",
                }
                logger.info("Fitted OLS for %s on %s", response_var, ", ".join(predictors))
                st.success("✅ Model fitted successfully!")
            except Exception as e:
                logger.exception("OLS fit failed")
                st.error(f"❌ Model fit failed: {e}")
                return

    current = st.session_state.get(SESSION_MREG_CURRENT)
    if current is None:
        st.info("Fit a model (or run a stepwise selection) to see results.")
        return

    model = current["model"]
    resp = current["response"]
    _render_title(resp, "Summary Report")
    terms = current["predictors"]
    st.markdown(
        f"**Source:** {current['source']} &nbsp;&nbsp; "
        f"**Terms:** {', '.join(terms) if terms else '(intercept only)'}"
    )

    _render_model_summary(model, resp, key_prefix="mreg_build")
    st.plotly_chart(plot_actual_vs_fitted(model, resp), key="mreg_actual_fitted")
    st.download_button(
        "📥 Download data with fitted values and residuals (CSV)",
        dataframe_to_csv_bytes(add_fitted_column(data, model)),
        f"penguins_fitted_{resp}.csv",
        CSV_MIME,
        key="mreg_fitted_csv",
    )

    # Save for comparison
    st.markdown("### 💾 Save Model for Comparison")
    saved = st.session_state.setdefault(SESSION_MREG_SAVED_MODELS, {})
    col_name, col_btn = st.columns([3, 1])
    with col_name:
        # No key: the suggested name follows the saved models
        name = st.text_input("Model name:", value=_next_model_name(saved))
    with col_btn:
        st.write("")
        if st.button("Save", key="mreg_save"):
            name = name.strip()
            if not name:
                st.warning("⚠️ Enter a model name.")
            else:
                if name in saved:
                    st.warning(f"⚠️ Replaced saved model '{name}'.")
                saved[name] = model
                st.success(f"✅ Saved '{name}' ({len(saved)} saved)")


# ==================== STEPWISE ====================

def _show_stepwise_tab(data, response_var, predictors):
    st.markdown("### Stepwise Selection")
    st.markdown(
        '<div style="font-size:12px;color:#666;margin-bottom:6px;">'
        'Each selected predictor is a candidate term. At every step the move that '
        'lowers the criterion most is taken; the search stops when no move helps.</div>',
        unsafe_allow_html=True,
    )

    col_dir, col_crit = st.columns(2)
    with col_dir:
        direction = st.radio(
            "Direction:",
            list(STEPWISE_DIRECTIONS),
            format_func=lambda d: _DIRECTION_LABELS.get(d, d),
            key="mreg_step_direction",
        )
    with col_crit:
        criterion = st.radio(
            "Criterion:",
            list(CRITERIA),
            format_func=str.upper,
            horizontal=True,
            key="mreg_step_criterion",
        )

    if st.button("🪜 Run Stepwise Selection", type="primary", key="mreg_step_run"):
        with st.spinner("Running stepwise selection..."):
            try:
                result = stepwise_selection(data, response_var, predictors,
                                            direction=direction, criterion=criterion)
                result["response"] = response_var
                result["candidates"] = list(predictors)
                st.session_state[SESSION_MREG_STEPWISE] = result
                st.session_state[SESSION_MREG_CURRENT] = {
                    "model": result["model"],
                    "response": response_var,
                    "predictors": result["selected"],
                    "source": f"stepwise {direction} {criterion.upper()}",
                }
                st.success("✅ Stepwise selection completed! The final model is now the current model.")
            except Exception as e:
                logger.exception("Stepwise selection failed")
                st.error(f"❌ Stepwise selection failed: {e}")
                return

    result = st.session_state.get(SESSION_MREG_STEPWISE)
    if result is None:
        st.info("Run a stepwise selection to see the model building sequence.")
        return

    resp = result["response"]
    crit = result["criterion"].upper()
    _render_title(resp, f"Model Building Report ({_DIRECTION_LABELS[result['direction']]}, {crit})")

    col_path, col_chart = st.columns([1, 1])
    with col_path:
        path_df = pd.DataFrame([{
            "Step": s["step"],
            "Change": "Start" if s["action"] == "start" else f"{s['action'].capitalize()} {s['term']}",
            crit: s["criterion"],
            "R²(adj) %": s["r_squared_adj"] * 100.0,
            "Terms": s["n_terms"],
        } for s in result["steps"]])
        st.dataframe(path_df.style.format({crit: "{:.2f}", "R²(adj) %": "{:.2f}"}), hide_index=True)
        selected = result["selected"]
        st.markdown(f"**Selected terms:** {', '.join(selected) if selected else '(intercept only)'}")
        dropped = [p for p in result["candidates"] if p not in selected]
        if dropped:
            st.caption(f"Not selected: {', '.join(dropped)}")
    with col_chart:
        st.plotly_chart(plot_stepwise_path(result["steps"], result["criterion"]),
                        key="mreg_step_chart")

    st.markdown("### Final Model")
    _render_model_summary(result["model"], resp, key_prefix="mreg_step")


# ==================== DIAGNOSTICS ====================

def _show_diagnostics_tab():
    current = st.session_state.get(SESSION_MREG_CURRENT)
    if current is None:
        st.info("Fit a model first (Build Model or Stepwise tab).")
        return

    model = current["model"]
    resp = current["response"]
    try:
        diagnostics = run_diagnostics(model)
        report_card = generate_report_card(model, diagnostics)
    except Exception as e:
        logger.exception("Diagnostics failed")
        st.error(f"❌ Diagnostics failed: {e}")
        return

    unusual = diagnostics["unusual"]
    _render_title(resp, "Diagnostic Report")

    # Legend
    st.markdown(
        '<div style="font-size:12px;margin:10px 0;">'
        '<span style="color:#e74c3c;font-weight:bold;">&#9679; Red</span> = Large residual '
        '&nbsp;&nbsp;&nbsp;'
        '<span style="color:#3498db;font-weight:bold;">&#9679; Blue</span> = High leverage '
        '&nbsp;&nbsp;&nbsp;'
        '<span style="color:#9b59b6;font-weight:bold;">&#9679; Purple</span> = Both'
        '</div>',
        unsafe_allow_html=True,
    )

    fig_diag = plot_diagnostic_report(model, unusual)
    st.plotly_chart(fig_diag, key="mreg_diag_chart")
    if st.button("🖼️ Prepare PNG", key="mreg_diag_png_prepare"):
        try:
            png = figure_to_png(fig_diag, width=1100, height=750)
            st.download_button("⬇️ Download PNG", png, f"diagnostics_{resp}.png",
                               PNG_MIME, key="mreg_diag_png_download")
        except Exception as e:
            logger.exception("PNG export failed")
            st.warning(f"⚠️ PNG export unavailable: {e}")

    # Tests
    dw = diagnostics["durbin_watson"]
    sw = diagnostics["normality"]
    col_dw, col_sw = st.columns(2)
    with col_dw:
        st.markdown("#### Independence (Durbin-Watson)")
        st.metric("DW statistic", f"{dw['statistic']:.3f}")
        st.caption(f"Interpretation: {dw['interpretation']}")
    with col_sw:
        st.markdown("#### Normality (Shapiro-Wilk)")
        if sw["normal"] is None:
            st.info("Too few residuals for the Shapiro-Wilk test.")
        else:
            ca, cb = st.columns(2)
            with ca:
                st.metric("W", f"{sw['statistic']:.4f}")
            with cb:
                st.metric("p-value", f"{sw['p_value']:.4f}")
            verdict = "normal" if sw["normal"] else "not normal"
            st.caption(f"Residuals look {verdict} at α = {sw['alpha']}")

    # VIF
    st.markdown("#### Collinearity (VIF)")
    vif_df = diagnostics["vif"]
    if vif_df.empty:
        st.info("Intercept-only model: no predictors to check.")
    else:
        col_vt, col_vc = st.columns([2, 3])
        with col_vt:
            st.dataframe(vif_df.style.format({"VIF": "{:.3f}", "Tolerance": "{:.3f}"}),
                         hide_index=True)
            st.caption(f"VIF above {VIF_THRESHOLD:g} flags collinearity.")
        with col_vc:
            st.plotly_chart(plot_vif(vif_df), key="mreg_vif_chart")

    st.markdown("---")
    _render_report_card(report_card, resp)

    # Unusual observations table
    n_lr = unusual["n_large_residuals"]
    n_hl = unusual["n_high_leverage"]
    if n_lr > 0 or n_hl > 0:
        st.markdown(
            f'<div style="font-weight:bold;font-size:13px;margin:16px 0 6px;">'
            f'Unusual Observations ({n_lr} large residuals, {n_hl} high leverage)</div>',
            unsafe_allow_html=True,
        )

        def _colour_flag(row):
            flag = row["Flag"]
            if "Large Residual" in flag and "High Leverage" in flag:
                return ["color: #9b59b6; font-weight: bold"] * len(row)
            elif "Large Residual" in flag:
                return ["color: #e74c3c; font-weight: bold"] * len(row)
            elif "High Leverage" in flag:
                return ["color: #3498db; font-weight: bold"] * len(row)
            return [""] * len(row)

        st.dataframe(
            unusual["table"].style.apply(_colour_flag, axis=1).format({
                "Fitted": "{:.3f}",
                "Residual": "{:.3f}",
                "Std Residual": "{:.3f}",
                "Leverage": "{:.4f}",
                "Cook's D": "{:.4f}",
            }),
            hide_index=True,
        )
    else:
        st.success("✅ No unusual observations detected.")


# ==================== COMPARE ====================

def _show_compare_tab():
    saved = st.session_state.get(SESSION_MREG_SAVED_MODELS, {})
    current = st.session_state.get(SESSION_MREG_CURRENT)

    if not saved:
        st.info("Save models in the Build Model tab to compare them.")
    else:
        comparison = compare_models(saved)
        st.markdown("### Saved Models (sorted by AIC)")
        st.dataframe(
            comparison.style.format({
                "R²": "{:.4f}", "R²(adj)": "{:.4f}", "AIC": "{:.2f}", "BIC": "{:.2f}", "S": "{:.3f}",
            }),
            hide_index=True,
        )
        st.plotly_chart(plot_model_comparison(comparison), key="mreg_compare_chart")

        st.markdown("### ANOVA (nested models)")
        chosen = st.multiselect("Models:", list(saved), default=list(saved), key="mreg_anova_models")
        if len(chosen) < 2:
            st.info("Choose at least 2 models for the F-test.")
        else:
            try:
                anova_df = anova_comparison({name: saved[name] for name in chosen})
                st.dataframe(anova_df.style.format("{:.4g}", na_rep=""))
                st.caption("Models are ordered by size; each row tests it against the previous one.")
            except ValueError as e:
                st.warning(f"⚠️ {e}")

        if st.button("🗑️ Clear saved models", key="mreg_clear_saved"):
            st.session_state[SESSION_MREG_SAVED_MODELS] = {}
            st.rerun()

    # ==================== EXCEL EXPORT ====================
    st.markdown("---")
    st.markdown("### 📥 Export Report to Excel")

    if current is None:
        st.info("Fit a model to enable the Excel report.")
        return

    if st.button("💾 Generate Excel Report", type="primary", key="mreg_export"):
        resp = current["response"]
        stepwise = st.session_state.get(SESSION_MREG_STEPWISE)
        steps, criterion = None, "aic"
        if stepwise is not None and stepwise["model"] is current["model"]:
            steps, criterion = stepwise["steps"], stepwise["criterion"]
        try:
            xlsx = export_results_to_excel(
                current["model"],
                resp,
                steps=steps,
                comparison=compare_models(saved) if saved else None,
                criterion=criterion,
            )
            st.download_button(
                label="⬇️ Download Excel Report",
                data=xlsx,
                file_name=f"Regression_{model_response(current['model'])}_Report.xlsx",
                mime=XLSX_MIME,
                key="mreg_download",
            )
            st.success("✅ Excel report generated! Click the download button above.")
        except Exception as e:
            logger.exception("Excel export failed")
            st.error(f"❌ Export failed: {e}")
