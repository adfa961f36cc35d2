"""Profile scraper package providing modular components for the LinkedIn profile scraper.

This package contains small, well-defined modules: a persistent browser
session, humanized navigation helpers, per-section extractors and the
wave-based orchestrator that merges them into one cached document.
"""
