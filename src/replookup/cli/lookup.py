"""Generate a reputation report for one person from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Dict, Sequence

from replookup.models import SocialPlatform, TargetPerson
from replookup.services.reputation import ReputationService, build_reputation_service

LOGGER = logging.getLogger(__name__)


def _handle(value: str) -> tuple[str, str]:
    platform, sep, handle = value.partition("=")
    if not sep or not handle.strip():
        raise argparse.ArgumentTypeError(f"expected PLATFORM=HANDLE, got {value!r}")
    try:
        SocialPlatform(platform.strip().lower())
    except ValueError as exc:
        choices = ", ".join(item.value for item in SocialPlatform)
        raise argparse.ArgumentTypeError(f"unknown platform {platform!r} (choose from {choices})") from exc
    return platform.strip().lower(), handle.strip()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--name", required=True, help="Full name of the person to look up.")
    parser.add_argument("--email", help="Optional email address.")
    parser.add_argument(
        "--handle",
        action="append",
        type=_handle,
        default=[],
        metavar="PLATFORM=HANDLE",
        help="Known social handle, e.g. github=octocat (repeatable).",
    )
    parser.add_argument("--photo", type=Path, help="Reference photo used for profile image matching.")
    parser.add_argument("--output", type=Path, help="Write the report JSON here instead of stdout.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def build_target(args: argparse.Namespace) -> TargetPerson:
    handles: Dict[str, str] = dict(args.handle)
    photo = None
    content_type = None
    if args.photo:
        photo = args.photo.read_bytes()
        content_type = mimetypes.guess_type(args.photo.name)[0]
    return TargetPerson(
        name=args.name,
        email=args.email,
        social_handles=handles,
        photo=photo,
        photo_content_type=content_type,
    )


async def run(target: TargetPerson, service: ReputationService) -> dict:
    report = await service.generate_report(target)
    return report.model_dump(mode="json", by_alias=True)


def main(argv: Sequence[str] | None = None, *, service: ReputationService | None = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(message)s",
    )

    target = build_target(args)
    try:
        payload = asyncio.run(run(target, service or build_reputation_service()))
    except Exception:
        LOGGER.exception("Failed to generate report for %s", target.name)
        return 1

    rendered = json.dumps(payload, indent=2, ensure_ascii=False)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(rendered + "\n", encoding="utf-8")
        LOGGER.info("Report %s written to %s", payload["id"], args.output)
    else:
        print(rendered)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
