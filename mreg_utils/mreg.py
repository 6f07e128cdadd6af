"""
Multiple Regression Engine
OLS via statsmodels formulas, stepwise selection by AIC/BIC,
collinearity / independence / normality diagnostics and reports.
"""

import ast
import io
import keyword
import re
from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from patsy import ModelDesc
from plotly.subplots import make_subplots
from scipy import stats
from scipy.stats import shapiro
from statsmodels.formula.api import ols
from statsmodels.stats.anova import anova_lm
from statsmodels.stats.outliers_influence import variance_inflation_factor
from statsmodels.stats.stattools import durbin_watson

from logging_config import get_logger
from utils.data_loaders import get_categorical_columns

from .config import (
    CONFIDENCE_LEVEL,
    CRITERIA,
    DEFAULT_CRITERION,
    DEFAULT_DIRECTION,
    DW_LOWER,
    DW_UPPER,
    LARGE_RESIDUAL_THRESHOLD,
    MAX_STEPWISE_STEPS,
    MIN_NORMALITY_N,
    MIN_PRECISE_N,
    NORMALITY_ALPHA,
    SHAPIRO_MAX_N,
    STEPWISE_DIRECTIONS,
    STEPWISE_TOLERANCE,
    VIF_THRESHOLD,
)

logger = get_logger(__name__)

INTERCEPT = "Intercept"


# =============================================================================
# 1. FORMULAS AND MODEL FITTING
# =============================================================================

def _quote(name: str) -> str:
    if name.isidentifier() and not keyword.iskeyword(name):
        return name
    return f"Q({name!r})"


def _unquote(term: str) -> str:
    """Inverse of the formula wrapping: ``C(Q('a b'))`` -> ``a b``."""
    term = term.strip()
    match = re.fullmatch(r"C\((.*)\)", term)
    if match:
        term = match.group(1).strip()
    match = re.fullmatch(r"Q\((.*)\)", term)
    if match:
        term = ast.literal_eval(match.group(1))
    return term


def pretty_term(name: str) -> str:
    """Readable name for a design column, e.g. ``C(species)[T.Gentoo]`` -> ``species[Gentoo]``."""
    match = re.fullmatch(r"(.*)\[T\.(.*)\]", name)
    if match:
        return f"{_unquote(match.group(1))}[{match.group(2)}]"
    return _unquote(name)


def build_formula(
    response: str,
    predictors: Sequence[str],
    categorical: Sequence[str] = (),
) -> str:
    """
    Patsy formula for ``response`` on ``predictors``.

    Predictors listed in ``categorical`` are wrapped in ``C()``; names that are
    not valid Python identifiers are quoted with ``Q()``. An empty predictor
    list gives the intercept-only model ``response ~ 1``.
    """
    terms = []
    for name in predictors:
        quoted = _quote(name)
        terms.append(f"C({quoted})" if name in categorical else quoted)
    rhs = " + ".join(terms) if terms else "1"
    return f"{_quote(response)} ~ {rhs}"


def model_terms(model) -> List[str]:
    """Predictor columns of a model fitted by :func:`fit_ols`, in formula order."""
    desc = ModelDesc.from_formula(model.model.formula)
    return [_unquote(term.name()) for term in desc.rhs_termlist if term.factors]


def model_response(model) -> str:
    desc = ModelDesc.from_formula(model.model.formula)
    return _unquote(desc.lhs_termlist[0].name())


def fit_ols(data: pd.DataFrame, response: str, predictors: Sequence[str]):
    """
    Fit an ordinary least squares model with ``statsmodels.formula.api.ols``.

    Parameters
    ----------
    data : pd.DataFrame
        Imputed dataset.
    response : str
        Numeric response column.
    predictors : sequence of str
        Predictor columns. Non-numeric columns enter as categorical terms.

    Returns
    -------
    statsmodels RegressionResultsWrapper

    Raises
    ------
    ValueError
        Unknown columns, non-numeric response, response used as a predictor,
        or fewer observations than parameters + 1.
    """
    predictors = list(predictors)
    missing = [c for c in [response] + predictors if c not in data.columns]
    if missing:
        raise ValueError(f"Unknown columns: {', '.join(missing)}")
    if response in predictors:
        raise ValueError(f"Response '{response}' cannot also be a predictor")
    if not pd.api.types.is_numeric_dtype(data[response]) or pd.api.types.is_bool_dtype(data[response]):
        raise ValueError(f"Response '{response}' must be numeric")

    categorical = [c for c in get_categorical_columns(data[predictors]) if c in predictors]
    formula = build_formula(response, predictors, categorical)
    model = ols(formula, data=data).fit()

    if model.df_resid < 1:
        raise ValueError(
            f"Not enough observations ({int(model.nobs)}) for "
            f"{int(model.df_model) + 1} parameters. Need at least "
            f"{int(model.df_model) + 2} observations."
        )
    return model


def information_criterion(model, criterion: str = DEFAULT_CRITERION) -> float:
    """AIC or BIC of a fitted model."""
    criterion = criterion.lower()
    if criterion == "aic":
        return float(model.aic)
    if criterion == "bic":
        return float(model.bic)
    raise ValueError(f"Unknown criterion '{criterion}'; use one of {', '.join(CRITERIA)}")


# =============================================================================
# 2. STEPWISE MODEL BUILDING
# =============================================================================

def _step_record(step: int, action: str, term: Optional[str], model, value: float, terms: List[str]) -> Dict:
    return {
        "step": step,
        "action": action,
        "term": term,
        "criterion": value,
        "r_squared_adj": float(model.rsquared_adj),
        "n_terms": len(terms),
        "terms": list(terms),
    }


def stepwise_selection(
    data: pd.DataFrame,
    response: str,
    candidates: Sequence[str],
    direction: str = DEFAULT_DIRECTION,
    criterion: str = DEFAULT_CRITERION,
    initial: Optional[Sequence[str]] = None,
    max_steps: int = MAX_STEPWISE_STEPS,
) -> Dict:
    """
    Stepwise term selection by an information criterion.

    Every candidate column is one term: a categorical predictor enters or
    leaves the model with all of its dummy columns. At each step every
    allowed move is fitted and the one with the lowest criterion is taken;
    the search stops as soon as no move lowers the current value.

    Parameters
    ----------
    data : pd.DataFrame
        Imputed dataset.
    response : str
        Numeric response column.
    candidates : sequence of str
        Terms the search may use.
    direction : {'both', 'forward', 'backward'}
        'forward' only adds terms, 'backward' only drops them, 'both'
        considers every add and every drop at each step.
    criterion : {'aic', 'bic'}
    initial : sequence of str, optional
        Starting terms. Defaults to all candidates for 'backward' and to the
        intercept-only model otherwise.
    max_steps : int
        Upper bound on accepted moves.

    Returns
    -------
    dict
        - 'selected' : list of terms in the final model
        - 'model' : final statsmodels fit
        - 'steps' : list of dicts with keys step, action ('start', 'add',
          'drop'), term, criterion, r_squared_adj, n_terms, terms
        - 'criterion', 'direction'
    """
    direction = direction.lower()
    if direction not in STEPWISE_DIRECTIONS:
        raise ValueError(
            f"Unknown direction '{direction}'; use one of {', '.join(STEPWISE_DIRECTIONS)}"
        )
    criterion = criterion.lower()
    if criterion not in CRITERIA:
        raise ValueError(f"Unknown criterion '{criterion}'; use one of {', '.join(CRITERIA)}")

    candidates = list(dict.fromkeys(candidates))
    if response in candidates:
        raise ValueError(f"Response '{response}' cannot also be a candidate term")
    if initial is None:
        current = list(candidates) if direction == "backward" else []
    else:
        current = list(dict.fromkeys(initial))
        unknown = [t for t in current if t not in candidates]
        if unknown:
            raise ValueError(f"Initial terms not among candidates: {', '.join(unknown)}")

    # All fits share one sample so their criteria are comparable
    sample = data[[response] + candidates].dropna()
    if len(sample) < len(data):
        logger.warning("Stepwise: dropped %d rows with missing values", len(data) - len(sample))

    model = fit_ols(sample, response, current)
    score = information_criterion(model, criterion)
    steps = [_step_record(0, "start", None, model, score, current)]

    for step in range(1, max_steps + 1):
        moves = []
        if direction in ("forward", "both"):
            moves += [("add", t, current + [t]) for t in candidates if t not in current]
        if direction in ("backward", "both"):
            moves += [("drop", t, [c for c in current if c != t]) for t in current]

        best = None
        for action, term, terms in moves:
            try:
                candidate_model = fit_ols(sample, response, terms)
            except ValueError as exc:
                logger.debug("Stepwise: skipped %s %s (%s)", action, term, exc)
                continue
            value = information_criterion(candidate_model, criterion)
            if best is None or value < best[0]:
                best = (value, action, term, terms, candidate_model)

        if best is None or best[0] >= score - STEPWISE_TOLERANCE:
            break

        score, action, term, current, model = best
        steps.append(_step_record(step, action, term, model, score, current))
        logger.debug("Stepwise step %d: %s %s -> %s = %.3f", step, action, term, criterion.upper(), score)

    logger.info(
        "Stepwise (%s, %s) for %s selected %d term(s): %s",
        direction, criterion.upper(), response, len(current), ", ".join(current) or "intercept only",
    )

    return {
        "selected": list(current),
        "model": model,
        "steps": steps,
        "criterion": criterion,
        "direction": direction,
    }


# =============================================================================
# 3. MODEL SUMMARIES
# =============================================================================

def coefficient_table(model, confidence_level: float = CONFIDENCE_LEVEL) -> pd.DataFrame:
    """Estimate, standard error, t, p and confidence interval per design column."""
    ci = model.conf_int(alpha=1.0 - confidence_level)
    pct = f"{confidence_level * 100:g}%"
    return pd.DataFrame({
        "Term": [pretty_term(n) for n in model.params.index],
        "Coefficient": model.params.to_numpy(),
        "SE": model.bse.to_numpy(),
        "t-Value": model.tvalues.to_numpy(),
        "p-Value": model.pvalues.to_numpy(),
        f"Lower {pct}": ci.iloc[:, 0].to_numpy(),
        f"Upper {pct}": ci.iloc[:, 1].to_numpy(),
    })


def model_summary(model) -> Dict:
    """Fit statistics of an OLS model."""
    has_predictors = model.df_model > 0
    return {
        "n": int(model.nobs),
        "k": int(model.df_model),
        "r_squared": float(model.rsquared),
        "r_squared_adj": float(model.rsquared_adj),
        "f_statistic": float(model.fvalue) if has_predictors else np.nan,
        "f_p_value": float(model.f_pvalue) if has_predictors else np.nan,
        "aic": float(model.aic),
        "bic": float(model.bic),
        "s": float(np.sqrt(model.scale)),
        "log_likelihood": float(model.llf),
        "df_resid": float(model.df_resid),
    }


def format_equation(response: str, model) -> str:
    """Format the fitted equation, e.g. ``y = 1.2 + 0.5 x - 3 species[Gentoo]``."""
    params = model.params
    intercept = params.get(INTERCEPT, 0.0)
    parts = [f"{response} = {intercept:.4g}"]
    for name, coef in params.items():
        if name == INTERCEPT or abs(coef) < 1e-12:
            continue
        sign = "+" if coef >= 0 else "-"
        parts.append(f"{sign} {abs(coef):.4g} {pretty_term(name)}")
    return " ".join(parts)


def add_fitted_column(
    data: pd.DataFrame,
    model,
    name: str = "fitted",
    resid_name: str = "residual",
) -> pd.DataFrame:
    """Copy of ``data`` with fitted values and residuals; rows not used in the fit get NaN."""
    augmented = data.copy()
    augmented[name] = model.fittedvalues.reindex(data.index)
    augmented[resid_name] = model.resid.reindex(data.index)
    return augmented


# =============================================================================
# 4. DIAGNOSTICS
# =============================================================================

def compute_vif(model, threshold: float = VIF_THRESHOLD) -> pd.DataFrame:
    """
    Variance inflation factor of every non-intercept design column.

    Dummy columns of a categorical term get their own VIF. With fewer than
    two predictor columns there is nothing to be collinear with and VIF is 1.
    """
    exog = model.model.exog
    names = list(model.model.exog_names)
    idx = [i for i, n in enumerate(names) if n != INTERCEPT]

    if len(idx) < 2:
        vifs = [1.0] * len(idx)
    else:
        with np.errstate(divide="ignore"):
            vifs = [float(variance_inflation_factor(exog, i)) for i in idx]

    vif_df = pd.DataFrame({
        "Variable": [pretty_term(names[i]) for i in idx],
        "VIF": vifs,
    })
    with np.errstate(divide="ignore"):
        vif_df["Tolerance"] = 1.0 / vif_df["VIF"]
    vif_df["high"] = vif_df["VIF"] > threshold
    return vif_df


def durbin_watson_test(model, lower: float = DW_LOWER, upper: float = DW_UPPER) -> Dict:
    """Durbin-Watson statistic of the residuals with a rule-of-thumb reading."""
    statistic = float(durbin_watson(np.asarray(model.resid)))
    if statistic < lower:
        interpretation = "positive autocorrelation"
    elif statistic > upper:
        interpretation = "negative autocorrelation"
    else:
        interpretation = "no autocorrelation"
    return {
        "test": "Durbin-Watson",
        "statistic": statistic,
        "interpretation": interpretation,
        "independent": lower <= statistic <= upper,
    }


def shapiro_wilk_test(
    model_or_residuals: Union[np.ndarray, pd.Series, object],
    alpha: float = NORMALITY_ALPHA,
) -> Dict:
    """Shapiro-Wilk test for normality of residuals."""
    residuals = getattr(model_or_residuals, "resid", model_or_residuals)
    residuals = np.asarray(residuals, dtype=float)
    residuals = residuals[~np.isnan(residuals)]
    n = len(residuals)
    if n < 3:
        return {"test": "Shapiro-Wilk", "statistic": np.nan, "p_value": np.nan,
                "normal": None, "n": n, "alpha": alpha}
    # Shapiro-Wilk max 5000 samples
    sample = residuals[:SHAPIRO_MAX_N] if n > SHAPIRO_MAX_N else residuals
    stat, p_val = shapiro(sample)
    return {
        "test": "Shapiro-Wilk",
        "statistic": float(stat),
        "p_value": float(p_val),
        "normal": bool(p_val > alpha),
        "n": n,
        "alpha": alpha,
    }


def detect_unusual_data(model, threshold_resid: float = LARGE_RESIDUAL_THRESHOLD) -> Dict:
    """
    Detect large residuals and high-leverage points.

    Uses the internally studentized residuals, the hat-matrix diagonal and
    Cook's distance from ``model.get_influence()``. Positions in
    ``large_residuals`` / ``high_leverage`` refer to rows of the fitted sample.
    """
    influence = model.get_influence()
    std_resid = np.asarray(influence.resid_studentized_internal)
    leverage = np.asarray(influence.hat_matrix_diag)
    cooks = np.asarray(influence.cooks_distance[0])

    n = int(model.nobs)
    p = int(model.df_model)
    threshold_lev = 2.0 * (p + 1) / n

    large_resid = np.where(np.abs(std_resid) > threshold_resid)[0]
    high_leverage = np.where(leverage > threshold_lev)[0]

    flagged = np.union1d(large_resid, high_leverage)
    flags = []
    for i in flagged:
        parts = []
        if i in large_resid:
            parts.append("Large Residual")
        if i in high_leverage:
            parts.append("High Leverage")
        flags.append("; ".join(parts))

    table = pd.DataFrame({
        "Obs": np.asarray(model.fittedvalues.index)[flagged],
        "Fitted": np.asarray(model.fittedvalues)[flagged],
        "Residual": np.asarray(model.resid)[flagged],
        "Std Residual": std_resid[flagged],
        "Leverage": leverage[flagged],
        "Cook's D": cooks[flagged],
        "Flag": flags,
    })

    return {
        "large_residuals": large_resid,
        "n_large_residuals": len(large_resid),
        "high_leverage": high_leverage,
        "n_high_leverage": len(high_leverage),
        "std_residuals": std_resid,
        "leverage": leverage,
        "cooks_distance": cooks,
        "threshold_resid": threshold_resid,
        "threshold_leverage": threshold_lev,
        "table": table,
    }


def run_diagnostics(model) -> Dict:
    """VIF, Durbin-Watson, Shapiro-Wilk and unusual data for one model."""
    return {
        "vif": compute_vif(model),
        "durbin_watson": durbin_watson_test(model),
        "normality": shapiro_wilk_test(model),
        "unusual": detect_unusual_data(model),
    }


def generate_report_card(model, diagnostics: Dict) -> List[Dict]:
    """Report card checks with status 'ok', 'warning' or 'info'."""
    checks = []
    n = int(model.nobs)

    # 1. Amount of Data
    if n >= MIN_PRECISE_N:
        status = "ok"
        desc = (
            f"The sample size (n = {n}) is large enough to provide a precise "
            f"estimate of the strength of the relationship."
        )
    else:
        status = "info"
        desc = (
            f"The sample size (n = {n}) is not large enough to provide a very "
            f"precise estimate of the strength of the relationship. Measures of "
            f"the strength of the relationship, such as R-Squared and R-Squared "
            f"(adjusted), can vary a great deal. To obtain a precise estimate, "
            f"larger samples (typically {MIN_PRECISE_N} or more) should be used."
        )
    checks.append({"check": "Amount of Data", "status": status, "description": desc})

    # 2. Unusual Data
    unusual = diagnostics["unusual"]
    n_lr = unusual["n_large_residuals"]
    n_hl = unusual["n_high_leverage"]
    if n_lr == 0 and n_hl == 0:
        status = "ok"
        desc = "No unusual data points were detected."
    else:
        status = "warning"
        parts = []
        if n_lr > 0:
            parts.append(
                f"Large residuals: {n_lr} data points have large residuals and "
                f"are not well fit by the equation. These points are marked in red "
                f"on the Diagnostic Report."
            )
        if n_hl > 0:
            parts.append(
                f"Unusual X values: {n_hl} data points have unusual X values, "
                f"which can strongly influence the model equation. These points "
                f"are marked in blue on the Diagnostic Report."
            )
        parts.append(
            "Because unusual data can have a strong influence on the results, "
            "try to identify the cause for their unusual nature. Correct any "
            "data entry or measurement errors."
        )
        desc = " • ".join(parts)
    checks.append({"check": "Unusual Data", "status": status, "description": desc})

    # 3. Normality
    normality = diagnostics["normality"]
    sw_text = (
        f"Shapiro-Wilk W = {normality['statistic']:.4f}, p = {normality['p_value']:.4f}."
        if normality["normal"] is not None else "Too few residuals for the Shapiro-Wilk test."
    )
    if normality["normal"]:
        status = "ok"
        desc = f"The residuals appear to be normally distributed. {sw_text}"
    elif normality["n"] >= MIN_NORMALITY_N:
        status = "info"
        desc = (
            f"{sw_text} The residuals depart from normality, but because you have "
            f"at least {MIN_NORMALITY_N} data points this is not a serious issue "
            f"for the p-values of the coefficients."
        )
    else:
        status = "warning"
        desc = (
            f"{sw_text} The residuals do not appear to be normally distributed "
            f"and the sample is small. P-values may not be accurate. Consider "
            f"transforming the response variable."
        )
    checks.append({"check": "Normality", "status": status, "description": desc})

    # 4. Independence
    dw = diagnostics["durbin_watson"]
    if dw["independent"]:
        status = "ok"
        desc = f"Durbin-Watson = {dw['statistic']:.3f}: no evidence of autocorrelated residuals."
    else:
        status = "warning"
        desc = (
            f"Durbin-Watson = {dw['statistic']:.3f} suggests {dw['interpretation']} "
            f"(expected between {DW_LOWER} and {DW_UPPER}). Residuals may depend on "
            f"the row order of the data."
        )
    checks.append({"check": "Independence", "status": status, "description": desc})

    # 5. Collinearity
    vif_df = diagnostics["vif"]
    high = vif_df.loc[vif_df["high"], "Variable"].tolist()
    if not high:
        status = "ok"
        desc = f"All VIF values are at most {VIF_THRESHOLD:g}."
    else:
        status = "warning"
        desc = (
            f"High VIF (> {VIF_THRESHOLD:g}) for {', '.join(high)}. Correlated "
            f"predictors inflate the standard errors of their coefficients; "
            f"consider removing one of them."
        )
    checks.append({"check": "Collinearity", "status": status, "description": desc})

    return checks


# =============================================================================
# 5. MODEL COMPARISON
# =============================================================================

COMPARISON_COLUMNS = ["Model", "Terms", "n", "k", "R²", "R²(adj)", "AIC", "BIC", "S"]


def compare_models(models: Mapping[str, object]) -> pd.DataFrame:
    """One row of fit statistics per named model, sorted by AIC."""
    rows = []
    for name, model in models.items():
        terms = model_terms(model)
        summary = model_summary(model)
        rows.append({
            "Model": name,
            "Terms": ", ".join(terms) if terms else "(intercept only)",
            "n": summary["n"],
            "k": summary["k"],
            "R²": summary["r_squared"],
            "R²(adj)": summary["r_squared_adj"],
            "AIC": summary["aic"],
            "BIC": summary["bic"],
            "S": summary["s"],
        })
    if not rows:
        return pd.DataFrame(columns=COMPARISON_COLUMNS)
    return pd.DataFrame(rows, columns=COMPARISON_COLUMNS).sort_values("AIC", kind="stable").reset_index(drop=True)


def anova_comparison(models: Union[Mapping[str, object], Sequence]) -> pd.DataFrame:
    """
    Sequential F-tests between nested models (``statsmodels.stats.anova.anova_lm``).

    Models are ordered from fewest to most parameters. They must share the
    response and the number of observations.
    """
    if isinstance(models, Mapping):
        named = list(models.items())
    else:
        named = [(f"Model {i + 1}", m) for i, m in enumerate(models)]
    if len(named) < 2:
        raise ValueError("ANOVA comparison needs at least 2 models")

    responses = {model_response(m) for _, m in named}
    if len(responses) > 1:
        raise ValueError(f"Models have different responses: {', '.join(sorted(responses))}")
    nobs = {int(m.nobs) for _, m in named}
    if len(nobs) > 1:
        raise ValueError("Models were fitted on different numbers of observations")

    named.sort(key=lambda item: item[1].df_model)
    table = anova_lm(*[m for _, m in named])
    table.index = [name for name, _ in named]
    table.index.name = "Model"
    return table


# =============================================================================
# 6. PLOTTING FUNCTIONS
# =============================================================================

STEP_COLOURS = {"start": "#7f8c8d", "add": "#4a8c3f", "drop": "#c0392b"}


def _step_label(step: Dict) -> str:
    if step["action"] == "start":
        return "Start"
    sign = "+" if step["action"] == "add" else "−"
    return f"{step['step']}: {sign} {step['term']}"


def plot_stepwise_path(steps: List[Dict], criterion: str = DEFAULT_CRITERION) -> go.Figure:
    """Criterion and R²(adj) after each accepted stepwise move."""
    if not steps:
        fig = go.Figure()
        fig.add_annotation(text="No model building steps", x=0.5, y=0.5,
                           showarrow=False, xref="paper", yref="paper")
        return fig

    labels = [_step_label(s) for s in steps]
    colours = [STEP_COLOURS[s["action"]] for s in steps]
    crit_name = criterion.upper()

    fig = make_subplots(rows=1, cols=2, shared_yaxes=True,
                        subplot_titles=[crit_name, "R-Squared(adjusted) %"],
                        horizontal_spacing=0.04)
    fig.add_trace(go.Bar(
        x=[s["criterion"] for s in steps], y=labels,
        orientation="h",
        marker_color=colours,
        text=[f"{s['criterion']:.1f}" for s in steps],
        textposition="auto",
        hovertemplate=f"%{{y}}<br>{crit_name} = %{{x:.2f}}<extra></extra>",
    ), row=1, col=1)
    fig.add_trace(go.Bar(
        x=[s["r_squared_adj"] * 100.0 for s in steps], y=labels,
        orientation="h",
        marker_color=colours,
        hovertemplate="%{y}<br>R²(adj) = %{x:.1f}%<extra></extra>",
    ), row=1, col=2)

    crit_vals = [s["criterion"] for s in steps]
    span = max(crit_vals) - min(crit_vals)
    pad = span * 0.1 if span > 0 else max(abs(min(crit_vals)) * 0.01, 1.0)
    fig.update_xaxes(range=[min(crit_vals) - pad, max(crit_vals) + pad], row=1, col=1)
    fig.update_xaxes(range=[0, 105], dtick=25, row=1, col=2)
    fig.update_yaxes(autorange="reversed", showgrid=False)

    fig.update_layout(
        height=max(220, len(steps) * 40 + 80),
        margin=dict(l=10, r=10, t=40, b=30),
        template="plotly_white",
        showlegend=False,
        bargap=0.25,
    )
    return fig


def plot_coefficients(model, confidence_level: float = CONFIDENCE_LEVEL) -> go.Figure:
    """Coefficient estimates with confidence intervals (intercept omitted)."""
    table = coefficient_table(model, confidence_level)
    table = table[table["Term"] != INTERCEPT]
    if table.empty:
        fig = go.Figure()
        fig.add_annotation(text="Intercept-only model", x=0.5, y=0.5,
                           showarrow=False, xref="paper", yref="paper")
        return fig

    lower, upper = table.columns[-2], table.columns[-1]
    significant = table["p-Value"] < NORMALITY_ALPHA
    fig = go.Figure(go.Scatter(
        x=table["Coefficient"], y=table["Term"],
        mode="markers",
        marker=dict(size=10, color=np.where(significant, "#2c5f8a", "#b8c6d6"),
                    line=dict(color="#2c5f8a", width=1)),
        error_x=dict(
            type="data", symmetric=False,
            array=table[upper] - table["Coefficient"],
            arrayminus=table["Coefficient"] - table[lower],
            color="#555", thickness=1.5,
        ),
        customdata=table["p-Value"],
        hovertemplate="%{y}<br>Coefficient: %{x:.4g}<br>p = %{customdata:.4f}<extra></extra>",
    ))
    fig.add_vline(x=0, line=dict(color="red", width=1, dash="dash"))
    fig.update_layout(
        height=max(200, len(table) * 40 + 80),
        margin=dict(l=10, r=10, t=40, b=30),
        template="plotly_white",
        title=f"Coefficients with {confidence_level * 100:g}% CI",
        xaxis=dict(title="Coefficient", showgrid=True),
        yaxis=dict(autorange="reversed", showgrid=False),
    )
    return fig


def plot_vif(vif_df: pd.DataFrame, threshold: float = VIF_THRESHOLD) -> go.Figure:
    """Horizontal bar chart of VIF per design column with the threshold marked."""
    vals = vif_df["VIF"].replace(np.inf, np.nan)
    finite_max = vals.max() if vals.notna().any() else threshold
    capped = vif_df["VIF"].clip(upper=finite_max * 1.2 if np.isfinite(finite_max) else threshold * 2)

    fig = go.Figure(go.Bar(
        x=capped, y=vif_df["Variable"],
        orientation="h",
        marker_color=np.where(vif_df["high"], "#e74c3c", "steelblue"),
        marker_line=dict(color="#2c5f8a", width=1),
        text=[f"{v:.2f}" if np.isfinite(v) else "∞" for v in vif_df["VIF"]],
        textposition="outside",
    ))
    fig.add_vline(x=threshold, line=dict(color="red", width=1.5, dash="dash"),
                  annotation_text=f"VIF = {threshold:g}")
    fig.update_layout(
        height=max(140, len(vif_df) * 45 + 60),
        margin=dict(l=10, r=10, t=30, b=30),
        template="plotly_white",
        xaxis=dict(title="Variance Inflation Factor",
                   range=[0, max(float(capped.max()) if len(capped) else 0, threshold) * 1.25],
                   showgrid=True),
        yaxis=dict(autorange="reversed", showgrid=False),
        bargap=0.35,
    )
    return fig


def _point_colours(n: int, unusual: Dict) -> List[str]:
    large_idx = set(np.asarray(unusual.get("large_residuals", [])).tolist())
    lever_idx = set(np.asarray(unusual.get("high_leverage", [])).tolist())
    colours = []
    for i in range(n):
        if i in large_idx and i in lever_idx:
            colours.append("#9b59b6")  # purple: both
        elif i in large_idx:
            colours.append("#e74c3c")  # red: large residual
        elif i in lever_idx:
            colours.append("#3498db")  # blue: high leverage
        else:
            colours.append("#333333")
    return colours


def plot_diagnostic_report(model, unusual: Optional[Dict] = None) -> go.Figure:
    """
    Four-panel residual diagnostics:
      Top-left:  Residuals vs Fitted
      Top-right: Normal Q-Q plot of standardized residuals
      Bot-left:  Scale-Location (sqrt |standardized residual| vs fitted)
      Bot-right: Standardized residuals vs Leverage

    Large residuals in RED, high-leverage points in BLUE, both in PURPLE.
    """
    if unusual is None:
        unusual = detect_unusual_data(model)

    fitted = np.asarray(model.fittedvalues)
    residuals = np.asarray(model.resid)
    std_res = np.asarray(unusual["std_residuals"])
    leverage = np.asarray(unusual["leverage"])
    labels = np.asarray(model.fittedvalues.index).astype(str)
    colours = _point_colours(len(residuals), unusual)

    fig = make_subplots(
        rows=2, cols=2,
        subplot_titles=[
            "Residuals vs Fitted",
            "Normal Q-Q",
            "Scale-Location",
            "Residuals vs Leverage",
        ],
        horizontal_spacing=0.1,
        vertical_spacing=0.14,
    )

    # --- (1,1) Residuals vs Fitted ---
    fig.add_trace(go.Scatter(
        x=fitted, y=residuals,
        mode="markers",
        marker=dict(color=colours, size=5),
        text=labels,
        hovertemplate="Obs %{text}<br>Fitted: %{x:.2f}<br>Residual: %{y:.2f}<extra></extra>",
    ), row=1, col=1)
    fig.add_hline(y=0, line=dict(color="red", width=1, dash="dash"), row=1, col=1)
    fig.update_xaxes(title_text="Fitted Value", row=1, col=1)
    fig.update_yaxes(title_text="Residual", row=1, col=1)

    # --- (1,2) Normal Q-Q ---
    order = np.argsort(std_res)
    n_pts = len(std_res)
    theoretical_q = stats.norm.ppf((np.arange(1, n_pts + 1) - 0.375) / (n_pts + 0.25))
    fig.add_trace(go.Scatter(
        x=theoretical_q, y=std_res[order],
        mode="markers",
        marker=dict(color=[colours[i] for i in order], size=4),
        text=labels[order],
        hovertemplate="Obs %{text}<br>Theoretical: %{x:.2f}<br>Std residual: %{y:.2f}<extra></extra>",
    ), row=1, col=2)
    if n_pts:
        q_range = np.array([theoretical_q.min(), theoretical_q.max()])
        fig.add_trace(go.Scatter(
            x=q_range, y=q_range,
            mode="lines",
            line=dict(color="red", width=1.5),
            hoverinfo="skip",
        ), row=1, col=2)
    fig.update_xaxes(title_text="Theoretical Quantile", row=1, col=2)
    fig.update_yaxes(title_text="Standardized Residual", row=1, col=2)

    # --- (2,1) Scale-Location ---
    fig.add_trace(go.Scatter(
        x=fitted, y=np.sqrt(np.abs(std_res)),
        mode="markers",
        marker=dict(color=colours, size=5),
        text=labels,
        hovertemplate="Obs %{text}<br>Fitted: %{x:.2f}<br>√|Std residual|: %{y:.2f}<extra></extra>",
    ), row=2, col=1)
    fig.update_xaxes(title_text="Fitted Value", row=2, col=1)
    fig.update_yaxes(title_text="√|Standardized Residual|", row=2, col=1)

    # --- (2,2) Residuals vs Leverage ---
    fig.add_trace(go.Scatter(
        x=leverage, y=std_res,
        mode="markers",
        marker=dict(color=colours, size=5),
        text=labels,
        customdata=unusual.get("cooks_distance"),
        hovertemplate=(
            "Obs %{text}<br>Leverage: %{x:.3f}<br>Std residual: %{y:.2f}"
            "<br>Cook's D: %{customdata:.3f}<extra></extra>"
        ),
    ), row=2, col=2)
    fig.add_hline(y=0, line=dict(color="gray", width=1, dash="dot"), row=2, col=2)
    fig.add_vline(x=unusual["threshold_leverage"], line=dict(color="#3498db", width=1, dash="dash"),
                  row=2, col=2)
    fig.update_xaxes(title_text="Leverage", row=2, col=2)
    fig.update_yaxes(title_text="Standardized Residual", row=2, col=2)

    fig.update_layout(
        height=650,
        template="plotly_white",
        margin=dict(l=60, r=30, t=40, b=40),
        showlegend=False,
    )
    return fig


def plot_actual_vs_fitted(model, response: Optional[str] = None) -> go.Figure:
    """Observed response against fitted values with the identity line."""
    response = response or model_response(model)
    fitted = np.asarray(model.fittedvalues)
    actual = fitted + np.asarray(model.resid)
    lo, hi = float(min(actual.min(), fitted.min())), float(max(actual.max(), fitted.max()))

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=fitted, y=actual,
        mode="markers",
        marker=dict(color="#2c5f8a", size=6, opacity=0.7),
        hovertemplate="Fitted: %{x:.2f}<br>Actual: %{y:.2f}<extra></extra>",
    ))
    fig.add_trace(go.Scatter(
        x=[lo, hi], y=[lo, hi],
        mode="lines",
        line=dict(color="red", width=1.5, dash="dash"),
        hoverinfo="skip",
    ))
    fig.update_layout(
        height=450,
        template="plotly_white",
        title=f"Actual vs Fitted: {response} (R² = {model.rsquared:.3f})",
        xaxis_title=f"Fitted {response}",
        yaxis_title=f"Actual {response}",
        showlegend=False,
    )
    return fig


def plot_model_comparison(comparison_df: pd.DataFrame) -> go.Figure:
    """Grouped AIC / BIC bars per saved model (lower is better)."""
    fig = go.Figure()
    fig.add_trace(go.Bar(x=comparison_df["Model"], y=comparison_df["AIC"],
                         name="AIC", marker_color="steelblue"))
    fig.add_trace(go.Bar(x=comparison_df["Model"], y=comparison_df["BIC"],
                         name="BIC", marker_color="#d4a017"))

    values = pd.concat([comparison_df["AIC"], comparison_df["BIC"]])
    if len(values):
        span = values.max() - values.min()
        pad = span * 0.15 if span > 0 else max(abs(values.min()) * 0.01, 1.0)
        fig.update_yaxes(range=[values.min() - pad, values.max() + pad])

    fig.update_layout(
        barmode="group",
        height=400,
        template="plotly_white",
        title="Information Criteria by Model (lower is better)",
        xaxis_title="Model",
        yaxis_title="Criterion",
        legend=dict(orientation="h", y=1.1, x=1, xanchor="right"),
    )
    return fig


# =============================================================================
# 7. EXCEL EXPORT
# =============================================================================

def export_results_to_excel(
    model,
    response_name: str,
    diagnostics: Optional[Dict] = None,
    report_card: Optional[List[Dict]] = None,
    steps: Optional[List[Dict]] = None,
    comparison: Optional[pd.DataFrame] = None,
    criterion: str = DEFAULT_CRITERION,
) -> bytes:
    """Export regression results to a multi-sheet Excel workbook and return its bytes."""
    import openpyxl
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    if diagnostics is None:
        diagnostics = run_diagnostics(model)
    if report_card is None:
        report_card = generate_report_card(model, diagnostics)

    wb = openpyxl.Workbook()
    bold = Font(bold=True)
    header_fill = PatternFill(start_color="D6DCE4", end_color="D6DCE4", fill_type="solid")
    title_fill = PatternFill(start_color="1F3864", end_color="1F3864", fill_type="solid")
    title_font = Font(bold=True, color="FFFFFF", size=14)

    def _add_title(ws, title, subtitle=""):
        ws.merge_cells("A1:G1")
        ws["A1"] = title
        ws["A1"].font = title_font
        ws["A1"].fill = title_fill
        ws["A1"].alignment = Alignment(horizontal="center")
        if subtitle:
            ws.merge_cells("A2:G2")
            ws["A2"] = subtitle
            ws["A2"].font = Font(bold=True, color="FFFFFF", size=11)
            ws["A2"].fill = title_fill
            ws["A2"].alignment = Alignment(horizontal="center")

    def _write_header(ws, row, headers):
        for j, h in enumerate(headers):
            cell = ws.cell(row=row, column=j + 1, value=h)
            cell.font = bold
            cell.fill = header_fill

    def _cell_value(value):
        if isinstance(value, (np.floating, float)):
            return None if not np.isfinite(value) else round(float(value), 6)
        if isinstance(value, np.integer):
            return int(value)
        if isinstance(value, np.bool_):
            return bool(value)
        return value

    def _write_frame(ws, row, frame):
        _write_header(ws, row, [str(c) for c in frame.columns])
        for i, values in enumerate(frame.itertuples(index=False)):
            for j, v in enumerate(values):
                ws.cell(row=row + 1 + i, column=j + 1, value=_cell_value(v))
        return row + 1 + len(frame)

    summary = model_summary(model)

    # ---- Sheet 1: Summary ----
    ws = wb.active
    ws.title = "Summary"
    _add_title(ws, f"Multiple Regression for {response_name}", "Summary Report")

    ws["A4"] = "Model Equation:"
    ws["A4"].font = bold
    ws.merge_cells("B4:G4")
    ws["B4"] = format_equation(response_name, model)

    summary_rows = [
        ("R²", summary["r_squared"]),
        ("R²(adj)", summary["r_squared_adj"]),
        ("S", summary["s"]),
        ("F-statistic", summary["f_statistic"]),
        ("F p-value", summary["f_p_value"]),
        ("AIC", summary["aic"]),
        ("BIC", summary["bic"]),
        ("Log-likelihood", summary["log_likelihood"]),
        ("N", summary["n"]),
        ("Predictor columns", summary["k"]),
    ]
    for i, (label, value) in enumerate(summary_rows):
        ws.cell(row=6 + i, column=1, value=label).font = bold
        ws.cell(row=6 + i, column=2, value=_cell_value(value))

    # ---- Sheet 2: Coefficients ----
    ws2 = wb.create_sheet("Coefficients")
    _add_title(ws2, "Coefficient Table", response_name)
    _write_frame(ws2, 4, coefficient_table(model))

    # ---- Sheet 3: Stepwise ----
    ws3 = wb.create_sheet("Stepwise")
    _add_title(ws3, "Stepwise Selection Path", response_name)
    if steps:
        path = pd.DataFrame([{
            "Step": s["step"],
            "Action": s["action"],
            "Term": s["term"] or "",
            criterion.upper(): s["criterion"],
            "R²(adj) %": s["r_squared_adj"] * 100.0,
            "Terms in model": s["n_terms"],
        } for s in steps])
        _write_frame(ws3, 4, path)
    else:
        ws3["A4"] = "No stepwise selection was run."

    # ---- Sheet 4: Diagnostics ----
    ws4 = wb.create_sheet("Diagnostics")
    _add_title(ws4, "Diagnostic Report", response_name)

    dw = diagnostics["durbin_watson"]
    sw = diagnostics["normality"]
    tests = pd.DataFrame([
        {"Test": "Durbin-Watson", "Statistic": dw["statistic"], "p-Value": np.nan,
         "Result": dw["interpretation"]},
        {"Test": "Shapiro-Wilk", "Statistic": sw["statistic"], "p-Value": sw["p_value"],
         "Result": {True: "normal", False: "not normal", None: "not tested"}[sw["normal"]]},
    ])
    row = _write_frame(ws4, 4, tests) + 1
    ws4.cell(row=row, column=1, value="Variance Inflation Factors").font = bold
    row = _write_frame(ws4, row + 1, diagnostics["vif"]) + 1

    red_font = Font(color="CC0000", bold=True)
    blue_font = Font(color="0000CC", bold=True)
    purple_font = Font(color="9B59B6", bold=True)
    unusual_table = diagnostics["unusual"]["table"]
    ws4.cell(row=row, column=1, value="Unusual Observations").font = bold
    start = row + 2
    _write_frame(ws4, row + 1, unusual_table)
    for i, flag in enumerate(unusual_table["Flag"]):
        font = purple_font if ";" in flag else red_font if flag == "Large Residual" else blue_font
        for col in range(1, len(unusual_table.columns) + 1):
            ws4.cell(row=start + i, column=col).font = font

    # ---- Sheet 5: Report Card ----
    ws5 = wb.create_sheet("Report Card")
    _add_title(ws5, "Report Card", response_name)
    _write_header(ws5, 4, ["Check", "Status", "Description"])
    for i, c in enumerate(report_card):
        ws5.cell(row=5 + i, column=1, value=c["check"]).font = bold
        ws5.cell(row=5 + i, column=2, value=c["status"].upper())
        ws5.cell(row=5 + i, column=3, value=c["description"])

    sheets = [ws, ws2, ws3, ws4, ws5]

    # ---- Sheet 6: Model Comparison ----
    if comparison is not None and not comparison.empty:
        ws6 = wb.create_sheet("Model Comparison")
        _add_title(ws6, "Model Comparison", "sorted by AIC")
        _write_frame(ws6, 4, comparison)
        sheets.append(ws6)

    # Auto-width columns
    for ws_item in sheets:
        for col in ws_item.columns:
            max_len = 0
            col_letter = get_column_letter(col[0].column)
            for cell in col:
                if cell.value is not None:
                    max_len = max(max_len, len(str(cell.value)))
            ws_item.column_dimensions[col_letter].width = min(max_len + 2, 60)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
