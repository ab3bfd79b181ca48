"""
autodocs.pipeline

Documentation pipeline (LangGraph).

Responsibilities:
- Detect changed source files (push commits or tree diff).
- Fetch contents, generate per-file Markdown, and rebuild the index.
- Provide Merkle hashing and path filtering primitives.
"""
