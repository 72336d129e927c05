"""Pesitos personal finance tracker.

This package contains a Streamlit app for logging income and expenses
with AI-assisted text and voice entry.  See ``app.py`` for the UI and
``api_server.py`` for the JSON tools API.
"""
