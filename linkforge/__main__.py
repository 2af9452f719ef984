import argparse
import logging
import os
import sys

from .core.config import load_settings
from .core.errors import LinkForgeError
from .core.generator import generate_links


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linkforge",
        description="LinkForge - strongly typed links for ASP.NET Core MVC controllers",
    )
    parser.add_argument(
        "--project-root",
        type=str,
        default=".",
        help="Directory containing the C# project (default: current directory)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Settings file (default: linkforge.json/.yaml in the project root)"
    )
    split = parser.add_mutually_exclusive_group()
    split.add_argument(
        "--split",
        dest="split",
        action="store_true",
        default=None,
        help="Write one generated file per controller source plus the aggregate file"
    )
    split.add_argument(
        "--no-split",
        dest="split",
        action="store_false",
        help="Write everything into the aggregate file"
    )
    parser.add_argument(
        "--no-rewrite",
        action="store_true",
        help="Do not modify controller sources (partial/virtual insertion)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate without writing any file"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    return parser


def main(argv=None) -> int:
    """Main entry point for LinkForge."""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level)
    project_root = os.path.abspath(args.project_root)
    logger.info(f"Starting LinkForge - Project root: {project_root}")

    overrides = {}
    if args.split is not None:
        overrides["split_into_multiple_files"] = args.split
    if args.no_rewrite:
        overrides["rewrite_handler_sources"] = False

    try:
        settings = load_settings(project_root, args.config, overrides)
        result = generate_links(project_root, settings, write=not args.dry_run)
    except LinkForgeError as e:
        logger.error(str(e))
        return 1

    print(f"\n  Controllers: {len(result.handlers)}")
    for unit in result.units:
        print(f"  Generated:   {os.path.relpath(unit.path, project_root)}")
    if settings.rewrite_handler_sources:
        for rewrite in result.source_rewrites:
            print(f"  Rewritten:   {os.path.relpath(rewrite.path, project_root)}")
    if result.diagnostics:
        print(f"\n  {len(result.diagnostics)} diagnostics:")
        for diagnostic in result.diagnostics:
            print(f"    {diagnostic}")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
