"""Command line interface.

Runs the same listing and promotion flows as the HTTP service, for use from
CI jobs and workstations:

    imagesync repositories --region us-east-1
    imagesync images --region us-east-1 --repository my-service
    imagesync promote --region us-east-1 --repository my-service \
        --tag 1.0.0-dev-2693 --account-id 656715373819
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

import structlog

from imagesync.factories import registry_catalog_factory, sync_pipeline_factory
from imagesync.packages.registry import (
    ConfigurationError,
    PromoteRequest,
    RegistryCatalog,
    RegistrySyncError,
    SyncPipeline,
)
from imagesync.settings import settings
from imagesync.utils.logging import LogFormats, configure_logging

logger = structlog.stdlib.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imagesync",
        description="List ECR repositories and images, and promote images.",
    )
    parser.add_argument(
        "-D", "--debug", action="store_true", help="enable debug logging"
    )
    parser.add_argument(
        "--profile",
        default=settings.AWS_PROFILE,
        help="AWS shared-config profile (default: AWS_PROFILE or the default chain)",
    )
    parser.add_argument(
        "--region",
        default=settings.AWS_REGION,
        help=f"AWS region (default: {settings.AWS_REGION})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("repositories", help="list repositories")

    parser_images = subparsers.add_parser(
        "images", help="list tagged images matching the tag filter"
    )
    parser_images.add_argument("--repository", required=True)

    parser_promote = subparsers.add_parser(
        "promote", help="pull an image, tag it with the promotion tag and push it"
    )
    parser_promote.add_argument("--repository", required=True)
    parser_promote.add_argument("--tag", required=True, help="tag to promote")
    parser_promote.add_argument(
        "--account-id",
        default=settings.AWS_ACCOUNT_ID,
        help="registry account id (default: AWS_ACCOUNT_ID)",
    )

    return parser


async def run_command(
    args: argparse.Namespace,
    catalog: RegistryCatalog,
    pipeline: SyncPipeline,
) -> dict:
    """Run one subcommand and return its JSON-serializable result."""
    if args.command == "repositories":
        repositories = await catalog.list_repositories(args.region, args.profile)
        return {
            "repositories": [
                {"repositoryName": repository.name} for repository in repositories
            ]
        }

    if args.command == "images":
        images = await catalog.list_images(args.region, args.repository, args.profile)
        return {
            "imageIds": [
                {"imageDigest": image.digest, "imageTag": image.tag}
                for image in images
            ]
        }

    if args.command == "promote":
        if not args.account_id:
            raise ConfigurationError(
                "--account-id is required when AWS_ACCOUNT_ID is unset"
            )
        run = await pipeline.promote(
            PromoteRequest(
                region=args.region,
                repository_name=args.repository,
                tag=args.tag,
                account_id=args.account_id,
                profile=args.profile,
            )
        )
        run.raise_for_state()
        return {
            "source": run.source_reference,
            "destination": run.destination_reference,
            "state": run.state.value,
        }

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        log_format=LogFormats.CONSOLE, log_level="DEBUG" if args.debug else None
    )

    try:
        result = asyncio.run(
            run_command(args, registry_catalog_factory(), sync_pipeline_factory())
        )
    except RegistrySyncError as e:
        logger.error("Command failed", command=args.command, stage=e.stage)
        print(json.dumps(e.to_dict()), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
