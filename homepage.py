"""
Penguin Analytics
Homepage - Main navigation and introduction
"""

import streamlit as st

from session_state_keys import SESSION_CURRENT_PAGE

import mreg_page
import pca_page

PAGE_HOME = "Home"
PAGE_PCA = "PCA & Clustering"
PAGE_REGRESSION = "Regression"


def show_home():
    """Show the main homepage"""
    st.markdown("""
    <h1 style='text-align: center; font-size: 3.2rem; margin: 1rem 0 0.5rem 0;
               background: linear-gradient(90deg, #ff8c00, #a034f0, #159090);
               -webkit-background-clip: text; -webkit-text-fill-color: transparent; font-weight: 700;'>
        Penguin Analytics
    </h1>
    <p style='text-align: center; font-size: 1.25rem; color: #444; max-width: 900px; margin: 0 auto;'>
        Exploratory statistics on the Palmer Archipelago penguin measurements
    </p>
    """, unsafe_allow_html=True)

    st.markdown("---")

    st.info("""
    ### Included Modules

    ✅ PCA & Clustering: scree plot, 2D and 3D k-means cluster plots
    ✅ Regression: OLS, stepwise AIC/BIC selection, diagnostics, model comparison

    Missing numeric values are imputed with the column median, missing
    categorical values with the column mode.
    """)

    st.markdown("## 🚀 Available Modules")
    col1, col2 = st.columns(2)

    with col1:
        if st.button("🐧 PCA & Clustering", key="btn_pca"):
            st.session_state[SESSION_CURRENT_PAGE] = PAGE_PCA; st.rerun()
    with col2:
        if st.button("📈 Regression", key="btn_mreg"):
            st.session_state[SESSION_CURRENT_PAGE] = PAGE_REGRESSION; st.rerun()


def main_content():
    if SESSION_CURRENT_PAGE not in st.session_state:
        st.session_state[SESSION_CURRENT_PAGE] = PAGE_HOME

    # ==================== SIDEBAR NAVIGATION ====================
    st.sidebar.markdown("## 🐧 Penguin Analytics")
    st.sidebar.markdown("---")

    if st.sidebar.button("🏠 Home", key="nav_home"):
        st.session_state[SESSION_CURRENT_PAGE] = PAGE_HOME; st.rerun()
    if st.sidebar.button("🐧 PCA & Clustering", key="nav_pca"):
        st.session_state[SESSION_CURRENT_PAGE] = PAGE_PCA; st.rerun()
    if st.sidebar.button("📈 Regression", key="nav_mreg"):
        st.session_state[SESSION_CURRENT_PAGE] = PAGE_REGRESSION; st.rerun()

    st.sidebar.markdown("---")
    st.sidebar.caption("Data: palmerpenguins (CC0)")

    # Routing
    page = st.session_state[SESSION_CURRENT_PAGE]
    if page == PAGE_PCA:
        pca_page.show()
    elif page == PAGE_REGRESSION:
        mreg_page.show()
    else:
        show_home()
