# type: ignore  # noqa: PGH003
"""Tests for authenticating with and publishing to the GitHub checks API."""

# ruff: noqa: S101, D103, INP001

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from requests import HTTPError

from build_checks.builders import AnnotationBuilder, CheckResultBuilder
from build_checks.context import IllegalStateError
from build_checks.github_api import AppInstallation, CheckRunPublisher
from build_checks.models import (
    AnnotationLevel,
    CheckResult,
    CheckRunAction,
    CheckRunConclusion,
    CheckRunStatus,
)
from build_checks.scm import GitHubAppCredentials

REPO_URL = "https://api.github.com/repos/jdoe/myproject"


def response_with(json_body: dict) -> MagicMock:
    response = MagicMock()
    response.json.return_value = json_body
    return response


@pytest.fixture
def publisher() -> CheckRunPublisher:
    return CheckRunPublisher(
        "jdoe/myproject",
        "abc123",
        "token",
        default_details_url="https://ci.example.com/job/main/7/",
    )


@pytest.fixture
def completed() -> CheckResult:
    annotation = (
        AnnotationBuilder.single_line("src/a.py", 3, AnnotationLevel.WARNING, "Unused")
        .with_start_column(1)
        .with_end_column(9)
        .build()
    )
    return (
        CheckResultBuilder("lint", CheckRunStatus.COMPLETED)
        .with_conclusion(CheckRunConclusion.TIME_OUT)
        .with_outputs([annotation])
        .with_actions(
            [CheckRunAction(label="Fix", identifier="fix", description="Apply")],
        )
        .build()
    )


def test_payload_of_completed_result(
    publisher: CheckRunPublisher,
    completed: CheckResult,
) -> None:
    payload = publisher.build_payload(completed)
    assert payload["name"] == "lint"
    assert payload["head_sha"] == "abc123"
    assert payload["status"] == "completed"
    assert payload["conclusion"] == "timed_out"
    assert "completed_at" in payload
    assert "started_at" not in payload
    assert payload["details_url"] == "https://ci.example.com/job/main/7/"
    assert payload["output"]["title"] == "lint"
    assert payload["output"]["summary"] == "1 warning(s)"
    assert payload["output"]["annotations"] == [
        {
            "path": "src/a.py",
            "start_line": 3,
            "end_line": 3,
            "start_column": 1,
            "end_column": 9,
            "annotation_level": "warning",
            "message": "Unused",
        },
    ]
    assert payload["actions"] == [
        {"label": "Fix", "identifier": "fix", "description": "Apply"},
    ]


def test_payload_of_pending_results(publisher: CheckRunPublisher) -> None:
    queued = publisher.build_payload(
        CheckResultBuilder("lint", CheckRunStatus.QUEUED)
        .with_details_url("https://example.com/lint")
        .build(),
    )
    running = publisher.build_payload(
        CheckResultBuilder("lint", CheckRunStatus.IN_PROGRESS).build(),
    )
    assert queued["status"] == "queued"
    assert queued["details_url"] == "https://example.com/lint"
    assert "conclusion" not in queued
    assert "started_at" not in queued
    assert running["status"] == "in_progress"
    assert "started_at" in running
    assert "conclusion" not in running


@patch("build_checks.github_api.patch")
@patch("build_checks.github_api.post")
def test_publish_creates_then_updates(
    mock_post: MagicMock,
    mock_patch: MagicMock,
    publisher: CheckRunPublisher,
    completed: CheckResult,
) -> None:
    mock_post.return_value = response_with({"id": 42})
    mock_patch.return_value = response_with({"id": 42})

    running = CheckResultBuilder("lint", CheckRunStatus.IN_PROGRESS).build()
    assert publisher.publish(running) == "42"
    assert publisher.publish(completed) == "42"

    mock_post.assert_called_once()
    assert mock_post.call_args.args == (f"{REPO_URL}/check-runs",)
    assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer token"
    assert mock_post.call_args.kwargs["json"]["status"] == "in_progress"
    mock_patch.assert_called_once()
    assert mock_patch.call_args.args == (f"{REPO_URL}/check-runs/42",)
    assert mock_patch.call_args.kwargs["json"]["conclusion"] == "timed_out"


@patch("build_checks.github_api.post")
def test_publish_propagates_http_errors(
    mock_post: MagicMock,
    publisher: CheckRunPublisher,
    completed: CheckResult,
) -> None:
    mock_post.return_value.raise_for_status.side_effect = HTTPError("422")
    with pytest.raises(HTTPError):
        publisher.publish(completed)
    assert publisher.current_run_id is None


@patch("build_checks.github_api.post")
def test_authenticate_app_installation(mock_post: MagicMock) -> None:
    mock_post.return_value = response_with({"token": "ghs_token"})
    installation = AppInstallation("1234", "5678", "https://ghe.example.com/api/v3/")
    with patch.object(
        AppInstallation,
        "_generate_app_jwt_from_pem",
        return_value="app.jwt",
    ) as mock_jwt:
        token = installation.authenticate(Path("/secrets/app.pem"))

    assert token == "ghs_token"  # noqa: S105
    mock_jwt.assert_called_once_with(Path("/secrets/app.pem"))
    assert mock_post.call_args.args == (
        "https://ghe.example.com/api/v3/app/installations/5678/access_tokens",
    )
    assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer app.jwt"


@patch("build_checks.github_api.post")
def test_authenticate_without_token(mock_post: MagicMock) -> None:
    mock_post.return_value = response_with({})
    installation = AppInstallation("1234", "5678")
    with (
        patch.object(
            AppInstallation,
            "_generate_app_jwt_from_pem",
            return_value="app.jwt",
        ),
        pytest.raises(HTTPError, match="no access token"),
    ):
        installation.authenticate(Path("/secrets/app.pem"))


@patch("build_checks.github_api.post")
def test_publish_without_check_run_id(
    mock_post: MagicMock,
    publisher: CheckRunPublisher,
    completed: CheckResult,
) -> None:
    mock_post.return_value = response_with({"message": "accepted"})
    with pytest.raises(HTTPError, match="no check run id"):
        publisher.publish(completed)
    assert publisher.current_run_id is None

def test_from_context_requires_valid_context() -> None:
    context = MagicMock()
    context.is_valid.return_value = False
    with pytest.raises(IllegalStateError):
        CheckRunPublisher.from_context(context)
    context.get_credentials.assert_not_called()


def test_from_context_uses_resolved_coordinates() -> None:
    context = MagicMock()
    context.is_valid.return_value = True
    context.get_repository.return_value = "jdoe/myproject"
    context.get_head_sha.return_value = "abc123"
    context.get_url.return_value = "https://ci.example.com/job/main/"
    context.get_credentials.return_value = GitHubAppCredentials(
        credentials_id="gh-app",
        app_id="1234",
        installation_id="5678",
        private_key_pem=Path("/secrets/app.pem"),
    )
    with patch.object(
        AppInstallation,
        "authenticate",
        return_value="ghs_token",
    ) as mock_authenticate:
        publisher = CheckRunPublisher.from_context(context)

    mock_authenticate.assert_called_once_with(Path("/secrets/app.pem"), timeout=10)
    assert publisher.repo_base_url == REPO_URL
    assert publisher.head_sha == "abc123"
    assert publisher.default_details_url == "https://ci.example.com/job/main/"
    assert publisher.headers["Authorization"] == "Bearer ghs_token"
