from __future__ import annotations

from autodocs.db.models import RepoContent, RepoDocumentation


def test_blob_sha_columns_fit_sha256_object_ids() -> None:
    # SHA-256 repositories use 64-hex object ids.
    assert RepoContent.__table__.c.sha.type.length == 64
    assert RepoDocumentation.__table__.c.source_sha.type.length == 64
