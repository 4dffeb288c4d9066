#!/usr/bin/env python3
"""
BOQ Extract - CLI Entry Point

A LangGraph-based agent that pulls bill-of-quantities line items out of
PDF tender documents and writes them as JSON reports.

Usage:
    # Single PDF
    python main.py ./tenders/project.pdf ./output

    # Batch folder
    python main.py ./tenders/ ./output

    # Batch folder on a worker pool, with a saved column mapping
    python main.py ./tenders/ ./output --workers 4 --profile supplier-a

    # Show workflow visualization
    python main.py --show-graph
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from version import __version__, APP_NAME
from dotenv import load_dotenv

# Load environment variables (BOQ_EXTRACT_CONFIG may come from .env)
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"{APP_NAME} - Extract bill-of-quantities line items from PDF documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ./tenders/project.pdf ./output
  %(prog)s ./tenders/ ./output --workers 4
  %(prog)s ./tenders/ ./output --profile supplier-a --profiles-file ./profiles.yaml
  %(prog)s --show-graph
        """
    )

    parser.add_argument(
        "input_path",
        nargs="?",
        help="PDF file or folder containing PDFs to process"
    )

    parser.add_argument(
        "output_path",
        nargs="?",
        help="Directory for output reports"
    )

    parser.add_argument(
        "--config", "-c",
        default=None,
        help="YAML config file (default: $BOQ_EXTRACT_CONFIG or ./config/boq_extract.yaml)"
    )

    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Maximum pages to read per document, 0 for all (default: 20)"
    )

    parser.add_argument(
        "--sufficiency-threshold",
        type=int,
        default=None,
        help="Item count that ends the strategy search early (default: 10)"
    )

    parser.add_argument(
        "--profile",
        default=None,
        help="Name of a saved column mapping profile to apply"
    )

    parser.add_argument(
        "--profiles-file",
        default=None,
        help="YAML file holding saved mapping profiles"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Process documents concurrently on a worker pool of this size (1-8)"
    )

    parser.add_argument(
        "--no-checkpoints",
        action="store_true",
        help="Disable state checkpointing"
    )

    parser.add_argument(
        "--show-graph",
        action="store_true",
        help="Show workflow graph visualization and exit"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def resolve_profile(args, config):
    """
    Look up the mapping profile named on the command line (or in config).

    Returns:
        MappingProfile or None

    Raises:
        MappingProfileError: the profile or its file cannot be found
    """
    from extraction import MappingProfileStore
    from extraction.errors import MappingProfileError

    name = args.profile or config.profiles.default_profile
    if not name:
        return None

    profiles_file = args.profiles_file or config.profiles.profiles_path
    if not profiles_file:
        raise MappingProfileError(f"Profile '{name}' requested but no profiles file configured")

    store = MappingProfileStore(profiles_file)
    profile = store.get(name)
    if profile is None:
        raise MappingProfileError(f"Profile '{name}' not found in {profiles_file}")

    store.record_usage(name)
    return profile


def main():
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    # Set logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Show graph visualization
    if args.show_graph:
        from agent import get_workflow_visualization
        print(get_workflow_visualization())
        return 0

    # Validate required arguments
    if not args.input_path or not args.output_path:
        parser.error("input_path and output_path are required (unless using --show-graph)")

    # Validate numeric arguments
    if args.max_pages is not None and args.max_pages < 0:
        parser.error(f"max-pages must be non-negative, got {args.max_pages}")
    if args.sufficiency_threshold is not None and args.sufficiency_threshold < 1:
        parser.error(f"sufficiency-threshold must be at least 1, got {args.sufficiency_threshold}")
    if args.workers is not None and not 1 <= args.workers <= 8:
        parser.error(f"workers must be between 1 and 8, got {args.workers}")

    # Resolve paths
    input_path = Path(args.input_path).resolve()
    output_path = Path(args.output_path).resolve()

    # Validate input
    if not input_path.exists():
        logger.error(f"Input path does not exist: {input_path}")
        return 1

    try:
        from extraction import BOQExtractionError, ExtractionContext, PageCache, load_config
        from agent import run_extraction_workflow, run_parallel_extraction

        config = load_config(args.config)
        if args.max_pages is not None:
            config.extraction.max_pages = args.max_pages or None
        if args.sufficiency_threshold is not None:
            config.extraction.sufficiency_threshold = args.sufficiency_threshold

        context = ExtractionContext(
            config=config,
            cache=PageCache(),
            profile=resolve_profile(args, config),
        )
    except ImportError as e:
        logger.error(f"Missing dependency: {e}")
        logger.error("Run: pip install -e .")
        return 1
    except (FileNotFoundError, BOQExtractionError) as e:
        logger.error(str(e))
        return 1

    # Create output directory
    output_path.mkdir(parents=True, exist_ok=True)

    parallel = args.workers is not None and input_path.is_dir()
    settings = config.extraction

    # Print banner
    print("\n" + "=" * 60)
    print(f"  {APP_NAME} {__version__}")
    print("  LangGraph Workflow for Bill-of-Quantities PDFs")
    print("=" * 60)
    print(f"  Input:     {input_path}")
    print(f"  Output:    {output_path}")
    print(f"  Max pages: {settings.max_pages or 'all'}")
    print(f"  Threshold: {settings.sufficiency_threshold} items")
    print(f"  Workers:   {args.workers if parallel else 'sequential'}")
    if context.profile:
        print(f"  Profile:   {context.profile.name}")
    print("=" * 60 + "\n")

    # Run the workflow
    try:
        start_time = datetime.now()

        if parallel:
            result = run_parallel_extraction(
                input_path=str(input_path),
                output_path=str(output_path),
                context=context,
                max_workers=args.workers,
            )
        else:
            result = run_extraction_workflow(
                input_path=str(input_path),
                output_path=str(output_path),
                context=context,
                enable_checkpoints=not args.no_checkpoints,
            )

        end_time = datetime.now()
        duration = (end_time - start_time).total_seconds()

        # Print summary
        print("\n" + "=" * 60)
        print("  PROCESSING COMPLETE")
        print("=" * 60)

        files_completed = result.get("files_completed", [])
        files_failed = result.get("files_failed", [])

        print(f"  Files Processed: {len(files_completed) + len(files_failed)}")
        print(f"  Successful:      {len(files_completed)}")
        print(f"  Failed:          {len(files_failed)}")
        print(f"  Line Items:      {result.get('total_items', 0)}")
        print(f"  Total Value:     {result.get('total_value', 0.0):,.2f}")
        print(f"  Cache:           {context.cache.stats()}")
        print(f"  Duration:        {duration:.1f} seconds")
        print("=" * 60)
        print(f"\n  Reports saved to: {output_path}")

        if files_failed:
            print("\n  Failed files:")
            for f in files_failed:
                print(f"    - {f.get('filename', 'Unknown')}: {f.get('errors', ['Unknown error'])[0]}")

        print()

        if not files_completed:
            if result.get("last_error"):
                logger.error(result["last_error"])
            return 1
        return 0

    except Exception as e:
        logger.exception(f"Workflow failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
