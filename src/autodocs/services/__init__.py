"""
autodocs.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and persistence decisions.
- Orchestrate calls across DB, pipeline, GitHub, and the SSE broker.
"""


# --- Module Notes -----------------------------------------------------------
# Services take their collaborators explicitly, so tests pass fake writers and mocked HTTP.
