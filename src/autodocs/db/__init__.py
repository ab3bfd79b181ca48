"""
autodocs.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and data-access repositories.
"""


# --- Module Notes -----------------------------------------------------------
# "repositories" is overloaded here: `db.repositories` are data-access classes, while the
# `Repository` model is a tracked GitHub repository.
