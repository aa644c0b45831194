"""Provides an interface to resolve and publish check runs from a pipeline step."""

import logging
import sys
from argparse import Namespace
from pathlib import Path

from configargparse import ArgumentParser
from pydantic import TypeAdapter, ValidationError

from build_checks.builders import CheckResultBuilder
from build_checks.context import (
    GitHubSCMSourceChecksContext,
    IllegalStateError,
    create_checks_context,
)
from build_checks.github_api import CheckRunPublisher
from build_checks.metadata import BuildMetadata, StaticSCMFacade
from build_checks.models import CheckAnnotation, CheckRunConclusion, CheckRunStatus

logger = logging.getLogger("build_checks")

_annotations_adapter = TypeAdapter(list[CheckAnnotation])


def build_argparser() -> ArgumentParser:
    """Create the parser for all commands, options may also be set via env vars."""
    argparser = ArgumentParser(
        prog="build-checks",
        description="Resolve the GitHub repository and commit of a build and publish "
        "check runs for it. Build jobs, runs and credentials are read from a "
        "metadata file (see --metadata).",
    )
    argparser.add_argument(
        "--metadata",
        type=Path,
        env_var="BUILD_CHECKS_METADATA",
        required=True,
        help="JSON file describing the build jobs, their GitHub sources and the "
        "GitHub App credentials.",
    )
    argparser.add_argument(
        "--job",
        type=str,
        env_var="BUILD_CHECKS_JOB",
        required=True,
        help="Name or full name of the job in the metadata file.",
    )
    argparser.add_argument(
        "--run-number",
        type=int,
        env_var="BUILD_CHECKS_RUN_NUMBER",
        required=False,
        help="Number of the run to report on. If not provided, the check is attached"
        " to the commit the job's head currently points at.",
    )
    argparser.add_argument(
        "--build-url",
        type=str,
        env_var="BUILD_CHECKS_URL",
        default="",
        help="URL of the build, linked from the check run unless --details-url is set.",
    )
    argparser.add_argument(
        "--verbose",
        action="store_true",
        help="Also log informational messages.",
    )
    subparsers = argparser.add_subparsers(
        description="Operation to be performed by the CLI.",
        required=True,
        dest="command",
    )
    subparsers.add_parser(
        "resolve",
        help="Print repository, head SHA and credentials id of the build. Exits "
        "with an error if a check run could not be published for it.",
    )

    publish_parser = subparsers.add_parser(
        "publish",
        help="Create or update a check run for the resolved commit.",
    )
    publish_parser.add_argument(
        "--check-name",
        type=str,
        env_var="GH_CHECK_NAME",
        required=True,
        help="A name for this check run. Will be shown on any respective GitHub PRs.",
    )
    publish_parser.add_argument(
        "--status",
        type=CheckRunStatus,
        choices=list(CheckRunStatus),
        default=CheckRunStatus.COMPLETED,
        help="Status of the check run, defaults to completed.",
    )
    publish_parser.add_argument(
        "--conclusion",
        type=CheckRunConclusion,
        choices=list(CheckRunConclusion),
        required=False,
        help="Conclusion of the check run, required if and only if the status is "
        "completed.",
    )
    publish_parser.add_argument(
        "--details-url",
        type=str,
        required=False,
        help="Absolute URL of a page with the full details of the check.",
    )
    publish_parser.add_argument(
        "--annotations",
        type=Path,
        required=False,
        help="JSON file with a list of annotations to attach to the check run.",
    )
    return argparser


def load_context(args: Namespace) -> GitHubSCMSourceChecksContext | None:
    """Resolve the context of the job or run selected on the command line."""
    if not args.job.strip():
        logging.fatal("[build-checks] No job given (--job is empty). Aborting.")
        return None
    metadata = BuildMetadata.from_file(args.metadata)
    job = metadata.find_job(args.job)
    run = (
        None
        if job is None or args.run_number is None
        else metadata.find_run(job.full_name, args.run_number)
    )
    if job is None or (args.run_number is not None and run is None):
        logging.fatal(
            "[build-checks] Job '%s' (run %s) not found in %s. Aborting.",
            args.job,
            args.run_number,
            args.metadata,
        )
        return None
    return create_checks_context(
        job,
        args.build_url,
        StaticSCMFacade(metadata),
        run=run,
    )


def resolve(args: Namespace) -> int:
    """Print the resolved coordinates, or log why they can't be used."""
    context = load_context(args)
    if context is None or not context.is_valid(logger):
        return 1
    sys.stdout.write(
        f"repository={context.get_repository()}\n"
        f"head_sha={context.get_head_sha()}\n"
        f"credentials_id={context.get_credentials_id()}\n",
    )
    return 0


def publish(args: Namespace) -> int:
    """Build the check result from the arguments and publish it."""
    try:
        builder = CheckResultBuilder(args.check_name, args.status)
        if args.conclusion is not None:
            builder.with_conclusion(args.conclusion)
        if args.details_url:
            builder.with_details_url(args.details_url)
        if args.annotations:
            builder.with_outputs(
                _annotations_adapter.validate_json(args.annotations.read_bytes()),
            )
        result = builder.build()
    except ValueError as err:
        logging.fatal("[build-checks] Invalid check run: %s", err)
        return 1

    context = load_context(args)
    if context is None:
        return 1
    try:
        publisher = CheckRunPublisher.from_context(context)
    except IllegalStateError as err:
        logging.fatal("[build-checks] %s. Aborting.", err)
        return 1
    run_id = publisher.publish(result)
    sys.stdout.write(f"check_run_id={run_id}\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return its exit code."""
    args = build_argparser().parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "resolve":
            return resolve(args)
        return publish(args)
    except (OSError, ValidationError) as err:
        logging.fatal("[build-checks] Cannot read input file: %s", err)
        return 1


if __name__ == "__main__":
    sys.exit(main())
