"""Model check run results of a build and resolve the commit to attach them to."""

from build_checks.builders import AnnotationBuilder, CheckResultBuilder
from build_checks.context import (
    ChecksContext,
    IllegalStateError,
    JobChecksContext,
    RunChecksContext,
    create_checks_context,
)
from build_checks.models import (
    AnnotationLevel,
    CheckAnnotation,
    CheckResult,
    CheckRunAction,
    CheckRunConclusion,
    CheckRunStatus,
)

__all__ = [
    "AnnotationBuilder",
    "AnnotationLevel",
    "CheckAnnotation",
    "CheckResult",
    "CheckResultBuilder",
    "CheckRunAction",
    "CheckRunConclusion",
    "CheckRunStatus",
    "ChecksContext",
    "IllegalStateError",
    "JobChecksContext",
    "RunChecksContext",
    "create_checks_context",
]
