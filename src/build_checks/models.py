"""Model representation of GitHub checks specific dictionary/json structures."""

from collections import Counter
from enum import Enum
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

# GitHub's contract for annotation texts: 64 KB for message and raw details
MAX_TEXT_BYTES = 64 * 1024
MAX_TITLE_LENGTH = 255


class CheckRunStatus(Enum):
    """The lifecycle states of a check run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CheckRunConclusion(Enum):
    """The valid conclusion states of a completed check run."""

    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIME_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"


class AnnotationLevel(Enum):
    """The severity levels permitted by GitHub checks for each individual annotation."""

    NOTICE = "notice"
    WARNING = "warning"
    FAILURE = "failure"


def check_text_size(value: str | None, field_name: str) -> str | None:
    """Reject texts exceeding GitHub's 64 KB limit (measured in UTF-8 bytes)."""
    if value is not None and len(value.encode("utf-8")) > MAX_TEXT_BYTES:
        msg = f"{field_name} must not exceed {MAX_TEXT_BYTES} bytes"
        raise ValueError(msg)
    return value


def check_absolute_url(value: str) -> str:
    """Reject URLs without scheme or host, as GitHub only links absolute URLs."""
    parsed = urlparse(value)
    if not (parsed.scheme and parsed.netloc):
        msg = f"details URL must be absolute, got: '{value}'"
        raise ValueError(msg)
    return value


class CheckAnnotation(BaseModel):
    """Models the json expected by GitHub checks for each individual annotation.

    Columns may only be given for annotations spanning a single line.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(min_length=1)
    start_line: int
    end_line: int
    annotation_level: AnnotationLevel
    message: str = Field(min_length=1)
    start_column: int | None = None
    end_column: int | None = None
    title: str | None = Field(default=None, max_length=MAX_TITLE_LENGTH)
    raw_details: str | None = None

    @field_validator("message", "raw_details")
    @classmethod
    def limit_text_size(cls, value: str | None, info: ValidationInfo) -> str | None:
        return check_text_size(value, info.field_name)

    @model_validator(mode="after")
    def check_line_range(self) -> "CheckAnnotation":
        if self.start_line > self.end_line:
            msg = (
                f"start line {self.start_line} must not be after "
                f"end line {self.end_line}"
            )
            raise ValueError(msg)
        has_columns = self.start_column is not None or self.end_column is not None
        if has_columns and self.start_line != self.end_line:
            msg = (
                "startLine and endLine attributes must be the same when adding "
                f"column, start line: {self.start_line}, end line: {self.end_line}"
            )
            raise ValueError(msg)
        return self


class CheckRunAction(BaseModel):
    """A follow-up action offered to the user alongside a check run."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(min_length=1, max_length=20)
    identifier: str = Field(min_length=1, max_length=20)
    description: str = Field(min_length=1, max_length=40)

    @field_validator("label", "identifier", "description")
    @classmethod
    def not_blank(cls, value: str, info: ValidationInfo) -> str:
        if not value.strip():
            msg = f"action {info.field_name} should not be blank"
            raise ValueError(msg)
        return value


class CheckResult(BaseModel):
    """Everything reported for one state of a check run.

    A conclusion is present if and only if the status is completed. A new
    instance is built for every status transition.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    status: CheckRunStatus
    conclusion: CheckRunConclusion | None = None
    details_url: str | None = None
    outputs: tuple[CheckAnnotation, ...] = ()
    actions: tuple[CheckRunAction, ...] = ()

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "check name should not be blank"
            raise ValueError(msg)
        return value

    @field_validator("details_url")
    @classmethod
    def url_is_absolute(cls, value: str | None) -> str | None:
        return None if value is None else check_absolute_url(value)

    @model_validator(mode="after")
    def check_conclusion(self) -> "CheckResult":
        if self.status == CheckRunStatus.COMPLETED and self.conclusion is None:
            msg = "conclusion must be set when status is completed"
            raise ValueError(msg)
        if self.status != CheckRunStatus.COMPLETED and self.conclusion is not None:
            msg = "status must be completed when setting conclusion"
            raise ValueError(msg)
        return self

    def summary(self) -> str:
        """Summarize the annotations of this result by level, for the Checks tab."""
        if not self.outputs:
            return "No annotations."
        counts = Counter(annotation.annotation_level for annotation in self.outputs)
        return ", ".join(
            f"{counts[level]} {level.value}(s)"
            for level in AnnotationLevel
            if counts[level]
        )
