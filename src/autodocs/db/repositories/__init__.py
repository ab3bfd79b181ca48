"""
autodocs.db.repositories

Data-access classes, one per table. Imported directly from submodules.
"""


# --- Module Notes -----------------------------------------------------------
# Repositories flush but never commit; the service layer owns transaction boundaries.
