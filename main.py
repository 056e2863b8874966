#!/usr/bin/env python3
"""
Bill Normalization Engine - Main Entry Point.

Normalizes the scanned pages of one bill (rotation, deskew, repeated
header/footer detection) and, when field candidates are supplied,
resolves them into final field values.

Usage:
    Command Line:
        python main.py --pages ./scans/bill_001/ --output ./outputs/bill_001/
        python main.py --pages ./scans/bill_001/ --output ./outputs/bill_001/ \\
            --candidates candidates.json --excel

    Python:
        from main import run_normalization
        summary = run_normalization("scans/bill_001", "outputs/bill_001")
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager, get_config
from billnorm.orientation import PageArtifact
from billnorm.pipeline import DocumentNormalizer
from billnorm.reporting import ReviewExporter, save_json
from billnorm.resolution import CandidateNormalizer, load_candidates
from billnorm.utils.exceptions import BillNormalizationError
from billnorm.utils.helpers import ensure_directory
from billnorm.utils.logger import get_logger, setup_logger_from_config

DEFAULT_EXTENSIONS = [".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp"]


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Bill Normalization Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Normalize the pages of one bill:
        python main.py --pages ./scans/bill_001/ --output ./outputs/bill_001/

    Also resolve extracted field candidates and write a review workbook:
        python main.py --pages ./scans/bill_001/ --output ./outputs/bill_001/ \\
            --candidates candidates.json --excel
        """
    )

    parser.add_argument(
        "--pages", "-p",
        type=str,
        required=True,
        help="Directory containing the page images of one bill"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        required=True,
        help="Output directory for corrected pages and results"
    )

    parser.add_argument(
        "--candidates",
        type=str,
        default=None,
        help="JSON file mapping field names to candidate lists"
    )

    parser.add_argument(
        "--excel",
        action="store_true",
        help="Write an Excel review workbook for resolved fields"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    if args.config:
        ConfigurationManager.reset()
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config("DEBUG" if args.debug else None)

    logger.info("=" * 60)
    logger.info("BILL NORMALIZATION ENGINE")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Pages: {args.pages}")
    logger.info(f"Output: {args.output}")

    return config


def collect_pages(pages_dir: str) -> List[PageArtifact]:
    """
    Build page artifacts for every supported image in a directory.

    Pages are ordered by filename; the file stem becomes the artifact id.

    Raises:
        FileNotFoundError: If the directory doesn't exist.
        ValueError: If the path is not a directory.
    """
    logger = get_logger(__name__)
    directory = Path(pages_dir)

    if not directory.exists():
        raise FileNotFoundError(f"Pages directory not found: {directory}")
    if not directory.is_dir():
        raise ValueError(f"Pages path is not a directory: {directory}")

    extensions = {ext.lower() for ext in get_config("input.supported_extensions", DEFAULT_EXTENSIONS)}
    files = sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in extensions)

    if not files:
        logger.warning(f"No supported images found in: {directory}")
    else:
        logger.info(f"Found {len(files)} pages")

    input_id = directory.name
    return [
        PageArtifact(
            artifact_id=path.stem,
            input_id=input_id,
            page_number=number,
            image_path=str(path),
        )
        for number, path in enumerate(files, 1)
    ]


def run_normalization(
    pages_dir: str,
    output_dir: str,
    candidates_path: Optional[str] = None,
    enable_excel: bool = False
) -> Dict[str, Any]:
    """
    Run the normalization pipeline for one bill.

    Args:
        pages_dir: Directory with the bill's page images.
        output_dir: Directory for corrected pages and result files.
        candidates_path: Optional JSON file of field candidates.
        enable_excel: Whether to write the Excel review workbook.

    Returns:
        Dictionary with the paths of every written output.
    """
    logger = get_logger(__name__)
    out_dir = ensure_directory(output_dir)

    normalizer = DocumentNormalizer()
    pages = collect_pages(pages_dir)

    normalized = normalizer.normalize_document(pages, out_dir / "corrected")
    outputs = {'normalization': save_json(normalized, out_dir / "normalization.json")}

    if candidates_path:
        with open(candidates_path, 'r', encoding='utf-8') as f:
            candidates = load_candidates(json.load(f))

        candidates = CandidateNormalizer().normalize_candidates(candidates)
        resolution = normalizer.resolve(candidates)
        outputs['resolution'] = save_json(resolution, out_dir / "resolution.json")

        logger.info(
            f"Resolved {len(resolution.fields)} fields, "
            f"overall confidence {resolution.overall_confidence}"
        )

        if enable_excel:
            outputs['excel'] = ReviewExporter().export(resolution, output_dir=str(out_dir))

    return outputs


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)

        initialize_system(args)
        logger = get_logger(__name__)

        outputs = run_normalization(
            pages_dir=args.pages,
            output_dir=args.output,
            candidates_path=args.candidates,
            enable_excel=args.excel
        )

        logger.info("=" * 60)
        for name, path in outputs.items():
            logger.info(f"{name}: {path}")
        logger.info("=" * 60)

        return 0

    except (FileNotFoundError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except BillNormalizationError as e:
        print(f"Processing failed: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
