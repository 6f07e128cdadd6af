"""
Streamlit Session State Keys - Canonical Definitions
===================================================

This module defines the canonical session state keys used across both pages
of the Penguin Analytics application. Using constants ensures consistency
and prevents bugs from typos or key mismatches.

Usage:
    from session_state_keys import SESSION_MREG_SAVED_MODELS

    saved = st.session_state.get(SESSION_MREG_SAVED_MODELS, {})
    saved[name] = model
    st.session_state[SESSION_MREG_SAVED_MODELS] = saved
"""

# ============================================================================
# NAVIGATION
# ============================================================================

SESSION_CURRENT_PAGE = 'current_page'
"""
Page shown in the main area (str): 'Home', 'PCA & Clustering' or 'Regression'
Updated by: homepage sidebar buttons
"""

# ============================================================================
# PCA & CLUSTERING
# ============================================================================

SESSION_PCA_VARIABLES = 'pca_variables'
"""
Widget key of the variable multiselect (list[str])
"""

SESSION_PCA_SCALE = 'pca_scale'
"""
Widget key of the z-score toggle (bool)
"""

SESSION_PCA_RESULTS = 'pca_results'
"""
Last PCA result dict from pca_utils.compute_pca
"""

SESSION_KMEANS_RESULTS = 'pca_kmeans_results'
"""
Last k-means result dict from pca_utils.compute_kmeans
"""

# ============================================================================
# REGRESSION
# ============================================================================

SESSION_MREG_RESPONSE = 'mreg_response'
"""
Widget key of the response selectbox (str)
"""

SESSION_MREG_PREDICTORS = 'mreg_predictors'
"""
Widget key of the predictor multiselect (list[str])
"""

SESSION_MREG_CURRENT = 'mreg_current'
"""
Model shown in the Build / Diagnostics tabs (dict)
Format: {'model': RegressionResults, 'response': str, 'predictors': list,
         'source': 'manual' | 'stepwise'}
"""

SESSION_MREG_STEPWISE = 'mreg_stepwise'
"""
Last stepwise_selection result (dict)
"""

SESSION_MREG_SAVED_MODELS = 'mreg_saved_models'
"""
Models saved for comparison (dict[str, RegressionResults])
Used by: Compare tab
"""
