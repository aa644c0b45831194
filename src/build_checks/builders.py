"""Builders assembling validated annotations and check results step by step.

Every builder call validates its own argument immediately and raises
:class:`ValueError` on violation, so an invalid value is never observable.
"""

from collections.abc import Iterable

from build_checks.models import (
    MAX_TITLE_LENGTH,
    AnnotationLevel,
    CheckAnnotation,
    CheckResult,
    CheckRunAction,
    CheckRunConclusion,
    CheckRunStatus,
    check_absolute_url,
    check_text_size,
)


class AnnotationBuilder:
    """Builder for :class:`CheckAnnotation`."""

    def __init__(
        self,
        path: str,
        start_line: int,
        end_line: int,
        annotation_level: AnnotationLevel,
        message: str,
    ) -> None:
        """Construct a builder with the required parameters of an annotation.

        :param path: the repo-relative path of the annotated file, e.g. src/main.py
        :param start_line: the first line of the annotation
        :param end_line: the last line of the annotation
        :param annotation_level: the severity of the annotation
        :param message: a short description of the feedback, at most 64 KB
        :raises ValueError: if a required parameter is missing or empty, or the line
            range is inverted
        """
        if not path:
            msg = "annotation path should not be empty"
            raise ValueError(msg)
        if annotation_level is None:
            msg = "annotation level is required"
            raise ValueError(msg)
        if not message:
            msg = "annotation message should not be empty"
            raise ValueError(msg)
        if start_line > end_line:
            msg = f"start line {start_line} must not be after end line {end_line}"
            raise ValueError(msg)
        check_text_size(message, "message")

        self._path = path
        self._start_line = start_line
        self._end_line = end_line
        self._annotation_level = annotation_level
        self._message = message
        self._start_column: int | None = None
        self._end_column: int | None = None
        self._title: str | None = None
        self._raw_details: str | None = None

    @classmethod
    def single_line(
        cls,
        path: str,
        line: int,
        annotation_level: AnnotationLevel,
        message: str,
    ) -> "AnnotationBuilder":
        """Construct a builder for an annotation on exactly one line."""
        return cls(path, line, line, annotation_level, message)

    def _require_single_line(self) -> None:
        if self._start_line != self._end_line:
            msg = (
                "startLine and endLine attributes must be the same when adding "
                f"column, start line: {self._start_line}, end line: {self._end_line}"
            )
            raise ValueError(msg)

    def with_start_column(self, start_column: int) -> "AnnotationBuilder":
        """Add the start column, only possible for single line annotations."""
        self._require_single_line()
        self._start_column = start_column
        return self

    def with_end_column(self, end_column: int) -> "AnnotationBuilder":
        """Add the end column, only possible for single line annotations."""
        self._require_single_line()
        self._end_column = end_column
        return self

    def with_title(self, title: str) -> "AnnotationBuilder":
        """Add the title of the annotation, at most 255 characters."""
        if title is None:
            msg = "annotation title should not be None"
            raise ValueError(msg)
        if len(title) > MAX_TITLE_LENGTH:
            msg = f"annotation title must not exceed {MAX_TITLE_LENGTH} characters"
            raise ValueError(msg)
        self._title = title
        return self

    def with_raw_details(self, raw_details: str) -> "AnnotationBuilder":
        """Add the details about this annotation, at most 64 KB."""
        if raw_details is None:
            msg = "annotation raw details should not be None"
            raise ValueError(msg)
        self._raw_details = check_text_size(raw_details, "raw_details")
        return self

    def build(self) -> CheckAnnotation:
        """Build the immutable annotation."""
        return CheckAnnotation(
            path=self._path,
            start_line=self._start_line,
            end_line=self._end_line,
            annotation_level=self._annotation_level,
            message=self._message,
            start_column=self._start_column,
            end_column=self._end_column,
            title=self._title,
            raw_details=self._raw_details,
        )


class CheckResultBuilder:
    """Builder for :class:`CheckResult`, one per check run status transition."""

    def __init__(self, name: str, status: CheckRunStatus) -> None:
        """Construct a builder with the check's name and current status.

        :param name: the stable, unique name of the check
        :param status: the status this check run is reported with
        :raises ValueError: if the name is blank or the status is missing
        """
        if status is None:
            msg = "check status is required"
            raise ValueError(msg)
        if name is None or not name.strip():
            msg = "check name should not be blank"
            raise ValueError(msg)

        self._name = name
        self._status = status
        self._details_url: str | None = None
        self._conclusion: CheckRunConclusion | None = None
        self._outputs: tuple[CheckAnnotation, ...] = ()
        self._actions: tuple[CheckRunAction, ...] = ()

    def with_details_url(self, details_url: str) -> "CheckResultBuilder":
        """Link a site with the full details of the check, must be absolute."""
        if details_url is None:
            msg = "details URL should not be None"
            raise ValueError(msg)
        self._details_url = check_absolute_url(details_url)
        return self

    def with_conclusion(self, conclusion: CheckRunConclusion) -> "CheckResultBuilder":
        """Set the conclusion, only possible once the status is completed.

        :raises ValueError: if the status is not completed or conclusion is None
        """
        if conclusion is None:
            msg = "conclusion should not be None"
            raise ValueError(msg)
        if self._status != CheckRunStatus.COMPLETED:
            msg = "status must be completed when setting conclusion"
            raise ValueError(msg)
        self._conclusion = conclusion
        return self

    def with_outputs(self, outputs: Iterable[CheckAnnotation]) -> "CheckResultBuilder":
        """Set the annotations of the check, keeping their order."""
        if outputs is None:
            msg = "outputs should not be None"
            raise ValueError(msg)
        self._outputs = tuple(outputs)
        return self

    def with_actions(self, actions: Iterable[CheckRunAction]) -> "CheckResultBuilder":
        """Set the actions offered by the check, keeping their order."""
        if actions is None:
            msg = "actions should not be None"
            raise ValueError(msg)
        self._actions = tuple(actions)
        return self

    def build(self) -> CheckResult:
        """Build the immutable check result.

        :raises ValueError: if the status is completed but no conclusion was set
        """
        if self._conclusion is None and self._status == CheckRunStatus.COMPLETED:
            msg = "conclusion must be set when status is completed"
            raise ValueError(msg)
        return CheckResult(
            name=self._name,
            status=self._status,
            conclusion=self._conclusion,
            details_url=self._details_url,
            outputs=self._outputs,
            actions=self._actions,
        )
