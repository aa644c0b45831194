"""Interfaces of the build system and source control metadata this package reads.

The build system and its SCM integration live outside of this package; they are
described here structurally so any implementation with the right shape fits.
"""

from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict

GITHUB_API_URL = "https://api.github.com"


class Job(Protocol):
    """A build job, e.g. one branch of a multibranch pipeline."""

    @property
    def name(self) -> str: ...

    @property
    def full_name(self) -> str: ...


class Run(Protocol):
    """One execution of a :class:`Job`."""

    @property
    def parent(self) -> Job: ...

    @property
    def number(self) -> int: ...


class GitHubSCMSource(BaseModel):
    """A job's configured integration with a repository hosted on GitHub."""

    model_config = ConfigDict(frozen=True)

    repo_owner: str
    repository: str
    credentials_id: str | None = None


class SCMHead(BaseModel):
    """A named reference, e.g. a branch or pull request."""

    model_config = ConfigDict(frozen=True)

    name: str


class SCMRevision(BaseModel):
    """The commit a head pointed at, at some point in time."""

    model_config = ConfigDict(frozen=True)

    head: SCMHead
    hash: str | None = None


class GitHubAppCredentials(BaseModel):
    """Credentials of a GitHub App installation, as kept by the credential store."""

    model_config = ConfigDict(frozen=True)

    credentials_id: str
    app_id: str
    installation_id: str
    private_key_pem: Path
    api_url: str = GITHUB_API_URL


class SCMFacade(Protocol):
    """Lookups into the build system's source control metadata.

    All lookups return ``None`` when the requested value is not known.
    """

    def find_github_scm_source(self, job: Job) -> GitHubSCMSource | None:
        """Return the job's GitHub source, if that is the kind it is configured with."""
        ...

    def find_run_revision(
        self,
        source: GitHubSCMSource,
        run: Run,
    ) -> SCMRevision | None:
        """Return the revision the given run was built from."""
        ...

    def find_head(self, job: Job) -> SCMHead | None:
        """Return the reference the job builds."""
        ...

    def find_head_revision(
        self,
        source: GitHubSCMSource,
        head: SCMHead,
    ) -> SCMRevision | None:
        """Return the revision the reference currently points at."""
        ...

    def find_hash(self, revision: SCMRevision) -> str | None:
        """Return the commit hash of the revision."""
        ...

    def find_github_app_credentials(
        self,
        job: Job,
        credentials_id: str,
    ) -> GitHubAppCredentials | None:
        """Return the GitHub App credentials stored under the id, usable by the job."""
        ...
