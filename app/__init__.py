"""
FastAPI Application Package

This package contains the main FastAPI application and routing logic.
It serves derived ratio series, overlays and volume histograms for the
tracked pairs to a charting frontend.
"""
