"""Main module for the gallery pipeline CLI."""

import sys
import argparse
from typing import List, Optional

from . import __version__
from .process_images import add_processing_arguments, run


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the unified command-line interface (CLI) of the Gallery Pipeline.

    This function sets up an `ArgumentParser` to handle different commands
    (e.g., "process", "version"). The "process" command shares its options
    with `process_images.py` and runs the same processing pass.
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="gallery-pipeline",
        description="Gallery Pipeline - thumbnails, previews and metadata for a photo tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process a photo tree with default settings (multithread)
  gallery-pipeline process --source-root photos --output-root gallery

  # Only reprocess changed photos, serially, with WebP output
  gallery-pipeline process --source-root photos --output-root gallery \\
                           --processor serial --output-format webp --skip-unchanged

  # Show version
  gallery-pipeline version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    process_parser: argparse.ArgumentParser = subparsers.add_parser(
        "process", help="Generate derivatives for every photo under the source root"
    )
    add_processing_arguments(process_parser)

    subparsers.add_parser("version", help="Show version information")

    args: argparse.Namespace = parser.parse_args(argv)

    if args.command == "process":
        sys.exit(run(args))

    elif args.command == "version":
        print("Gallery Pipeline CLI")
        print(f"Version {__version__}")
        print("Thumbnails, previews and metadata with multiple concurrency strategies")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
