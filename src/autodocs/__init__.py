"""
autodocs

GitHub-connected documentation generator: webhook intake, LLM documentation
pipeline, and the JSON/SSE API consumed by the dashboard.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
