"""Resolve the GitHub coordinates a check run of a build job or run is attached to.

A context answers which repository and commit a build corresponds to, which
credentials publish to it, and whether that answer can be trusted.
Resolution happens once, when the context is created: a run-based context
freezes the commit the run was built from, while a job-based context takes
the commit its head points at right now, so a context created later may see a
newer commit.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from build_checks.scm import (
    GitHubAppCredentials,
    GitHubSCMSource,
    Job,
    Run,
    SCMFacade,
)

GITHUB_APP_DOCS_URL = (
    "https://github.com/jenkinsci/github-branch-source-plugin/blob/master/docs/"
    "github-app.adoc"
)


class IllegalStateError(RuntimeError):
    """Raised when an unresolved value of a checks context is accessed."""


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a build against its GitHub source.

    Without a source there is never a head SHA; the reverse is possible.
    """

    source: GitHubSCMSource | None = None
    head_sha: str | None = None

    @property
    def repository(self) -> str | None:
        if self.source is None:
            return None
        return f"{self.source.repo_owner}/{self.source.repository}"

    @property
    def credentials_id(self) -> str | None:
        return None if self.source is None else self.source.credentials_id


class ChecksContext(ABC):
    """Base of the contexts a check run can be published against."""

    def __init__(self, job: Job, url: str, scm_facade: SCMFacade) -> None:
        self._job = job
        self._url = url
        self._scm_facade = scm_facade

    @property
    def job(self) -> Job:
        return self._job

    @property
    def scm_facade(self) -> SCMFacade:
        return self._scm_facade

    def get_url(self) -> str:
        """Return the URL of the build, the default details URL of its checks."""
        return self._url

    @abstractmethod
    def get_head_sha(self) -> str:
        """Return the SHA of the commit the check run is attached to."""

    @abstractmethod
    def get_repository(self) -> str:
        """Return the repository slug in the form ``owner/name``."""

    @abstractmethod
    def is_valid(self, logger: logging.Logger) -> bool:
        """Check the context can be published against, logging why if not."""

    @abstractmethod
    def get_credentials_id(self) -> str | None:
        """Return the id of the credentials configured for the repository."""

    def _find_github_app_credentials(self) -> GitHubAppCredentials | None:
        credentials_id = self.get_credentials_id()
        if not credentials_id:
            return None
        return self._scm_facade.find_github_app_credentials(self._job, credentials_id)

    def get_credentials(self) -> GitHubAppCredentials:
        """Return the GitHub App credentials to publish with.

        :raises IllegalStateError: if no GitHub App credentials are available
        """
        credentials = self._find_github_app_credentials()
        if credentials is None:
            msg = f"No GitHub APP credentials available for job: {self._job.name}"
            raise IllegalStateError(msg)
        return credentials

    def has_valid_credentials(self, logger: logging.Logger) -> bool:
        """Check that GitHub App credentials are configured for the repository."""
        credentials_id = self.get_credentials_id()
        if not credentials_id:
            logger.error("No credentials found")
            return False

        if self._find_github_app_credentials() is None:
            logger.error("No GitHub app credentials found: '%s'", credentials_id)
            logger.error("See: %s", GITHUB_APP_DOCS_URL)
            return False

        return True


class GitHubSCMSourceChecksContext(ChecksContext):
    """Context for a job configured with a GitHub SCM source.

    Subclasses only decide how the head SHA is found.
    """

    def __init__(self, job: Job, url: str, scm_facade: SCMFacade) -> None:
        super().__init__(job, url, scm_facade)
        source = scm_facade.find_github_scm_source(job)
        head_sha = self._resolve_head_sha(source) if source is not None else None
        self._resolution = Resolution(source=source, head_sha=head_sha or None)

    @abstractmethod
    def _resolve_head_sha(self, source: GitHubSCMSource) -> str | None: ...

    @property
    def resolution(self) -> Resolution:
        return self._resolution

    def get_head_sha(self) -> str:
        """Return the resolved head SHA.

        :raises IllegalStateError: if no SHA could be resolved
        """
        sha = self._resolution.head_sha
        if sha is None or not sha.strip():
            msg = f"No SHA found for job: {self._job.name}"
            raise IllegalStateError(msg)
        return sha

    def get_repository(self) -> str:
        """Return ``owner/name`` of the GitHub source.

        :raises IllegalStateError: if the job has no GitHub source
        """
        repository = self._resolution.repository
        if repository is None:
            msg = f"No GitHub SCM source found for job: {self._job.name}"
            raise IllegalStateError(msg)
        return repository

    def get_credentials_id(self) -> str | None:
        return self._resolution.credentials_id

    def is_valid(self, logger: logging.Logger) -> bool:
        logger.info("Trying to resolve checks parameters from GitHub SCM...")

        if self._resolution.source is None:
            logger.error("Job does not use GitHub SCM")
            return False

        if not self.has_valid_credentials(logger):
            return False

        sha = self._resolution.head_sha
        if sha is None or not sha.strip():
            logger.error("No HEAD SHA found for %s", self.get_repository())
            return False

        return True


class RunChecksContext(GitHubSCMSourceChecksContext):
    """Context of a finished or running build, fixed to the commit it was built from."""

    def __init__(self, run: Run, url: str, scm_facade: SCMFacade) -> None:
        self._run = run
        super().__init__(run.parent, url, scm_facade)

    @property
    def run(self) -> Run:
        return self._run

    def _resolve_head_sha(self, source: GitHubSCMSource) -> str | None:
        revision = self._scm_facade.find_run_revision(source, self._run)
        if revision is None:
            return None
        return self._scm_facade.find_hash(revision)


class JobChecksContext(GitHubSCMSourceChecksContext):
    """Context of a job, following the commit its head currently points at."""

    def _resolve_head_sha(self, source: GitHubSCMSource) -> str | None:
        head = self._scm_facade.find_head(self._job)
        if head is None:
            return None
        revision = self._scm_facade.find_head_revision(source, head)
        if revision is None:
            return None
        return self._scm_facade.find_hash(revision)


def create_checks_context(
    job: Job,
    url: str,
    scm_facade: SCMFacade,
    run: Run | None = None,
) -> GitHubSCMSourceChecksContext:
    """Create the context for a run of the job, or for the job itself.

    :param job: the job the check run belongs to
    :param url: URL of the run or job, the default details URL
    :param scm_facade: lookups into the source control metadata
    :param run: the run to report on; without it the job's current head is used
    :raises ValueError: if the run does not belong to the job
    """
    if run is None:
        return JobChecksContext(job, url, scm_facade)
    if run.parent != job:
        msg = f"run #{run.number} does not belong to job: {job.name}"
        raise ValueError(msg)
    return RunChecksContext(run, url, scm_facade)
