"""Build metadata read from a JSON document, exposed through the SCM interfaces.

This lets a pipeline that is not integrated with a build server describe its
job, runs and GitHub source in a file, e.g.::

    {
      "jobs": [
        {
          "name": "main",
          "full_name": "my-project/main",
          "source": {"repo_owner": "jdoe", "repository": "myproject",
                     "credentials_id": "gh-app"},
          "head": {"name": "main", "hash": "0a1b2c3"},
          "runs": [{"number": 1, "hash": "9f8e7d6"}]
        }
      ],
      "credentials": [
        {"credentials_id": "gh-app", "app_id": "1234", "installation_id": "5678",
         "private_key_pem": "/secrets/app.pem"}
      ]
    }
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from build_checks.scm import (
    GitHubAppCredentials,
    GitHubSCMSource,
    Job,
    Run,
    SCMHead,
    SCMRevision,
)


class HeadRecord(BaseModel):
    """The reference a job builds and the commit it currently points at."""

    model_config = ConfigDict(frozen=True)

    name: str
    hash: str | None = None


class RunRecord(BaseModel):
    """A recorded run of a job and the commit it was built from."""

    model_config = ConfigDict(frozen=True)

    number: int
    hash: str | None = None


class JobRecord(BaseModel):
    """A job, its GitHub source, head and recorded runs."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    full_name: str = ""
    source: GitHubSCMSource | None = None
    head: HeadRecord | None = None
    runs: tuple[RunRecord, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def default_full_name(cls, data: Any) -> Any:  # noqa: ANN401
        if isinstance(data, dict) and not data.get("full_name"):
            return {**data, "full_name": data.get("name")}
        return data


class JobRun(BaseModel):
    """A :class:`RunRecord` bound to the job it belongs to."""

    model_config = ConfigDict(frozen=True)

    parent: JobRecord
    number: int


class BuildMetadata(BaseModel):
    """All jobs and credentials described by a metadata file."""

    jobs: list[JobRecord] = Field(default_factory=list)
    credentials: list[GitHubAppCredentials] = Field(default_factory=list)

    @classmethod
    def from_file(cls, metadata_fp: Path) -> "BuildMetadata":
        """Load and validate a metadata file.

        :param metadata_fp: path to the metadata json
        :raises ValidationError: if the file content does not match the format
        """
        with metadata_fp.open("r", encoding="utf-8") as json_file:
            return cls.model_validate_json(json_file.read())

    def find_job(self, name: str) -> JobRecord | None:
        """Find a job by its full name, or by its short name if no full name matches.

        Short names are shared by the branches of different projects, the first job
        with that name wins.
        """
        if not name:
            return None
        return next(
            (job for job in self.jobs if job.full_name == name),
            next((job for job in self.jobs if job.name == name), None),
        )

    def find_run(self, job_name: str, number: int) -> JobRun | None:
        job = self.find_job(job_name)
        if job is None or not any(run.number == number for run in job.runs):
            return None
        return JobRun(parent=job, number=number)


class StaticSCMFacade:
    """SCM lookups answered from a :class:`BuildMetadata` snapshot."""

    def __init__(self, metadata: BuildMetadata) -> None:
        self._metadata = metadata

    def _job_record(self, job: Job) -> JobRecord | None:
        for record in self._metadata.jobs:
            if record is job:
                return record
        return next(
            (r for r in self._metadata.jobs if r.full_name == job.full_name),
            None,
        )

    def find_github_scm_source(self, job: Job) -> GitHubSCMSource | None:
        record = self._job_record(job)
        return record.source if record else None

    def find_run_revision(
        self,
        source: GitHubSCMSource,
        run: Run,
    ) -> SCMRevision | None:
        record = self._job_record(run.parent)
        if record is None or record.source != source:
            return None
        run_record = next((r for r in record.runs if r.number == run.number), None)
        if run_record is None:
            return None
        # runs don't record their reference, attribute them to the job's head
        head = SCMHead(name=record.head.name if record.head else record.name)
        return SCMRevision(head=head, hash=run_record.hash)

    def find_head(self, job: Job) -> SCMHead | None:
        record = self._job_record(job)
        if record is None or record.head is None:
            return None
        return SCMHead(name=record.head.name)

    def find_head_revision(
        self,
        source: GitHubSCMSource,
        head: SCMHead,
    ) -> SCMRevision | None:
        for record in self._metadata.jobs:
            if (
                record.source == source
                and record.head is not None
                and record.head.name == head.name
                and record.head.hash
            ):
                return SCMRevision(head=head, hash=record.head.hash)
        return None

    def find_hash(self, revision: SCMRevision) -> str | None:
        return revision.hash or None

    def find_github_app_credentials(
        self,
        job: Job,  # noqa: ARG002
        credentials_id: str,
    ) -> GitHubAppCredentials | None:
        return next(
            (
                credentials
                for credentials in self._metadata.credentials
                if credentials.credentials_id == credentials_id
            ),
            None,
        )
