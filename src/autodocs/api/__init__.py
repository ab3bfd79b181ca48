"""
autodocs.api

HTTP API package (FastAPI app factory, dependencies, routers).
"""
