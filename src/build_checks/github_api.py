"""Publish check results to the GitHub checks API."""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any

import jwt
from requests import HTTPError, Response, patch, post

from build_checks.context import ChecksContext, IllegalStateError
from build_checks.models import CheckResult, CheckRunStatus
from build_checks.scm import GITHUB_API_URL

logger = logging.getLogger(__name__)


def _get_auth_headers(token: str, accept_type: str) -> dict[str, str]:
    return {
        "Accept": f"{accept_type}",
        "Authorization": f"Bearer {token}",
    }


def _gen_github_timestamp() -> str:
    """Generate a timestamp for the current moment in the GitHub-expected format."""
    return datetime.now().astimezone().replace(microsecond=0).isoformat()


class AppInstallation:
    """Installation of a GitHub App, identified by App ID and Installation ID."""

    def __init__(
        self,
        app_id: str,
        app_installation_id: str,
        github_base_url: str = GITHUB_API_URL,
    ) -> None:
        self.app_id = app_id
        self.app_installation_id = app_installation_id
        self.github_base_url = github_base_url.rstrip("/")

    def _generate_app_jwt_from_pem(
        self,
        pem_filepath: Path,
        ttl_seconds: int = 600,
    ) -> str:
        with pem_filepath.open("rb") as pem_file:
            priv_key = jwt.jwk_from_pem(pem_file.read())
        jwt_payload = {
            "iat": int(time.time()),
            "exp": int(time.time()) + ttl_seconds,
            "iss": self.app_id,
        }
        jwt_instance = jwt.JWT()
        return str(jwt_instance.encode(jwt_payload, priv_key, alg="RS256"))

    def authenticate(self, app_privkey_pem: Path, timeout: int = 10) -> str:
        """Authenticate this App installation with GitHub and get an access token.

        :param app_privkey_pem: private key for this app in PEM format
        :param timeout: request timeout in seconds, optional, defaults to 10
        :return: the GitHub App access token
        :raises HTTPError: in case GitHub refused to issue a token, or the response
            carries none
        """
        app_jwt: str = self._generate_app_jwt_from_pem(app_privkey_pem)
        url: str = (
            f"{self.github_base_url}/app/installations/{self.app_installation_id}"
            "/access_tokens"
        )
        headers = _get_auth_headers(app_jwt, "application/vnd.github+json")
        response: Response = post(url, headers=headers, timeout=timeout)
        response.raise_for_status()
        token = response.json().get("token")
        if not token:
            msg = (
                "GitHub issued no access token for app installation "
                f"{self.app_installation_id}"
            )
            raise HTTPError(msg, response=response)
        return str(token)


class CheckRunPublisher:
    """Publishes the successive results of one check run for a commit.

    The first result creates the check run, later results update it.
    """

    def __init__(
        self,
        repository: str,
        head_sha: str,
        access_token: str,
        api_url: str = GITHUB_API_URL,
        default_details_url: str | None = None,
    ) -> None:
        self.repository = repository
        self.head_sha = head_sha
        self.repo_base_url = f"{api_url.rstrip('/')}/repos/{repository}"
        self.default_details_url = default_details_url
        self.current_run_id: str | None = None
        self.headers: dict[str, str] = _get_auth_headers(
            access_token,
            "application/vnd.github+json",
        )

    @classmethod
    def from_context(
        cls,
        context: ChecksContext,
        timeout: int = 10,
    ) -> "CheckRunPublisher":
        """Authenticate with the context's GitHub App and target its coordinates.

        :param context: resolved context of the build to report on
        :param timeout: request timeout in seconds, optional, defaults to 10
        :raises IllegalStateError: if the context can't be published against
        """
        if not context.is_valid(logger):
            msg = f"Cannot publish checks for job: {context.job.name}"
            raise IllegalStateError(msg)
        credentials = context.get_credentials()
        token = AppInstallation(
            credentials.app_id,
            credentials.installation_id,
            credentials.api_url,
        ).authenticate(credentials.private_key_pem, timeout=timeout)
        return cls(
            context.get_repository(),
            context.get_head_sha(),
            token,
            api_url=credentials.api_url,
            default_details_url=context.get_url(),
        )

    def build_payload(self, result: CheckResult) -> dict[str, Any]:
        """Translate a check result into the json body of the checks API."""
        payload: dict[str, Any] = {
            "name": result.name,
            "head_sha": self.head_sha,
            "status": result.status.value,
            "output": {
                "title": result.name,
                "summary": result.summary(),
                "annotations": [
                    annotation.model_dump(mode="json", exclude_none=True)
                    for annotation in result.outputs
                ],
            },
            "actions": [action.model_dump(mode="json") for action in result.actions],
        }
        details_url = result.details_url or self.default_details_url
        if details_url:
            payload["details_url"] = details_url
        if result.status == CheckRunStatus.IN_PROGRESS:
            payload["started_at"] = _gen_github_timestamp()
        if result.conclusion is not None:
            payload["conclusion"] = result.conclusion.value
            payload["completed_at"] = _gen_github_timestamp()
        return payload

    def publish(self, result: CheckResult, timeout: int = 10) -> str:
        """Create the check run, or update it if it was already created.

        :param result: the current state of the check run
        :param timeout: request timeout in seconds, optional, defaults to 10
        :return: the id of the check run
        :raises HTTPError: in case the GitHub API rejected the check run
        """
        payload = self.build_payload(result)
        if self.current_run_id is None:
            response: Response = post(
                f"{self.repo_base_url}/check-runs",
                json=payload,
                headers=self.headers,
                timeout=timeout,
            )
        else:
            response = patch(
                f"{self.repo_base_url}/check-runs/{self.current_run_id}",
                json=payload,
                headers=self.headers,
                timeout=timeout,
            )
        response.raise_for_status()
        run_id = response.json().get("id")
        if run_id is None:
            msg = f"GitHub returned no check run id for '{result.name}'"
            raise HTTPError(msg, response=response)
        self.current_run_id = str(run_id)
        logger.info(
            "Published check '%s' (%s) for %s@%s",
            result.name,
            result.status.value,
            self.repository,
            self.head_sha,
        )
        return self.current_run_id
