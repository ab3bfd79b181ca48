"""
autodocs.auth

Authentication/authorization package.

Responsibilities:
- Bearer JWT issuing (dev) and validation.
- FastAPI dependencies resolving the caller (`Principal`) and enforcing roles.
"""
