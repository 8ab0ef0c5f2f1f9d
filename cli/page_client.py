"""Command line front-end to the page persistence controller."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from eventpages.config import Settings
from eventpages.exceptions import PageReferenceError
from eventpages.schemas.page import PageDocument
from eventpages.services.download_service import serialize_document
from eventpages.services.page_controller import PagePersistenceController
from eventpages.services.template_service import TEMPLATE_NAMES, TemplateContext

if TYPE_CHECKING:
    import httpx


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eventpages",
        description="Create, load and save event pages",
    )
    parser.add_argument("--server", "-s", help="Remote page store URL (e.g. http://localhost:3001/api)")
    parser.add_argument("--offline", action="store_true", help="Never contact the remote store")
    parser.add_argument("--cache-db", help="Local cache database URL")
    parser.add_argument("--download-dir", help="Directory for offline save fallbacks")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("list", help="List known pages")

    show = subparsers.add_parser("show", help="Print a page document")
    show.add_argument("page", help="Page id or filename")
    show.add_argument(
        "--no-refresh", action="store_true", help="Print the local copy without waiting for the server"
    )

    create = subparsers.add_parser("create", help="Create an empty page")
    create.add_argument("--base-name", default=None, help="Name prefix (default: Page)")

    template = subparsers.add_parser("template", help="Create a page from a template")
    template.add_argument("kind", choices=sorted(TEMPLATE_NAMES), help="Template kind")

    rename = subparsers.add_parser("rename", help="Rename a page")
    rename.add_argument("page_id")
    rename.add_argument("name")

    save = subparsers.add_parser("save", help="Save a page document from a JSON file")
    save.add_argument("page_id")
    save.add_argument("file", type=Path)

    context = subparsers.add_parser("context", help="Set the shared event banner and details")
    context.add_argument("--event-name")
    context.add_argument("--banner-url")
    context.add_argument("--location")
    context.add_argument("--start-date")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.server:
        overrides["remote_base_url"] = args.server
    if args.offline:
        overrides["remote_base_url"] = None
    if args.cache_db:
        overrides["cache_database_url"] = args.cache_db
    if args.download_dir:
        overrides["download_dir"] = Path(args.download_dir)
    return Settings(**overrides)  # type: ignore[arg-type]


async def run(
    args: argparse.Namespace,
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Execute one command; returns the process exit code."""
    controller = await PagePersistenceController.from_settings(settings, transport=transport)
    try:
        if args.command == "list":
            pages = await controller.list_pages()
            if not pages:
                print("No pages.")
            for page in pages:
                print(f"{page.id}\t{page.name}\t{page.storage_key}")

        elif args.command == "show":
            result = await controller.load_page(args.page)
            document = result.document
            if result.refresh is not None and not args.no_refresh:
                refreshed = await result.refresh
                if refreshed is not None:
                    document = refreshed.document
            print(serialize_document(document), end="")

        elif args.command == "create":
            page = await controller.create_page(args.base_name)
            print(f"Created {page.name} ({page.id})")

        elif args.command == "template":
            page = await controller.create_from_template(args.kind)
            print(f"Created {page.name} ({page.id}) from template {args.kind}")

        elif args.command == "rename":
            page = await controller.rename_page(args.page_id, args.name)
            print(f"Renamed to {page.name} ({page.id})")

        elif args.command == "save":
            try:
                document = PageDocument.model_validate_json(args.file.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as exc:
                print(f"Error: cannot read {args.file}: {exc}")
                return 1
            result = await controller.save_page(args.page_id, document)
            print(f"{result.status}: {result.filename}")
            if result.message:
                print(f"  {result.message}")
            if result.status == "not_saved":
                return 1

        elif args.command == "context":
            current = controller.event_context
            context = TemplateContext(
                event_name=args.event_name if args.event_name is not None else current.event_name,
                banner_url=args.banner_url if args.banner_url is not None else current.banner_url,
                location=args.location if args.location is not None else current.location,
                start_date=args.start_date if args.start_date is not None else current.start_date,
            )
            await controller.set_event_context(context)
            print(json.dumps({k: v for k, v in vars(context).items() if v}, indent=2))

        else:
            build_parser().print_help()
            return 2
    except PageReferenceError as exc:
        print(f"Error: {exc}")
        return 1
    finally:
        await controller.aclose()
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        settings = settings_from_args(args)
        settings.validate_runtime()
    except (ValidationError, ValueError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)
    sys.exit(asyncio.run(run(args, settings)))


if __name__ == "__main__":
    main()
