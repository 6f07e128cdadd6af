"""
Penguin Analytics
Main entry point for Streamlit deployment
"""

import streamlit as st

# Set page config FIRST - before any other Streamlit command
st.set_page_config(
    page_title="Penguin Analytics",
    page_icon="🐧",
    layout="wide",
    initial_sidebar_state="expanded"
)

from logging_config import setup_logging

if __name__ == "__main__":
    setup_logging()

    # Import and run the main application (without calling set_page_config again)
    from homepage import main_content
    main_content()
