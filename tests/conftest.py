# type: ignore  # noqa: PGH003
# ruff: noqa: D100, D103, INP001

import json
from pathlib import Path

import pytest

METADATA = {
    "jobs": [
        {
            "name": "main",
            "full_name": "myproject/main",
            "source": {
                "repo_owner": "jdoe",
                "repository": "myproject",
                "credentials_id": "gh-app",
            },
            "head": {"name": "main", "hash": "0a1b2c3"},
            "runs": [{"number": 1, "hash": "9f8e7d6"}, {"number": 2}],
        },
        {
            "name": "feature",
            "source": {"repo_owner": "jdoe", "repository": "myproject"},
            "head": {"name": "feature"},
        },
        {"name": "nightly"},
    ],
    "credentials": [
        {
            "credentials_id": "gh-app",
            "app_id": "1234",
            "installation_id": "5678",
            "private_key_pem": "/secrets/app.pem",
        },
    ],
}


@pytest.fixture
def metadata_fp(tmp_path: Path) -> Path:
    metadata_fp = tmp_path / "build-metadata.json"
    metadata_fp.write_text(json.dumps(METADATA), encoding="utf-8")
    return metadata_fp
