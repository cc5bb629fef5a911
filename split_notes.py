"""
Batch Note Splitting Script

Splits NFS-e XML files (and ZIP archives of them) into one file per note,
grouped by ISS withholding category.

Output layout:
    {output}/tomador/*.xml
    {output}/prestador/*.xml
    {output}/sem_categoria/*.xml
or, with --zip:
    {output}/tomador.zip, {output}/prestador.zip, {output}/sem_categoria.zip

Usage:
    python split_notes.py lotes/ extra.zip --output separadas
    python split_notes.py lotes/ --tag tipoRecolhimento --tomador Tomador --prestador Prestador
    python split_notes.py lotes/ --workers 8 --zip
"""

import argparse
import logging
import shutil
import sys
from datetime import datetime
from pathlib import Path

from nfse_splitter.api import (
    IngestionPipeline,
    ParallelIngestionPipeline,
    load_inputs,
    save_issues_csv,
)
from nfse_splitter.config import config_summary, get_classification_config
from nfse_splitter.exceptions import ConfigurationError
from nfse_splitter.models import Category
from nfse_splitter.types import Categories


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Split NFS-e XML batches into notes grouped by ISS withholding"
    )
    parser.add_argument("paths", nargs="+", help="XML files, ZIP archives or directories")
    parser.add_argument("--output", "-o", default="separadas", help="Output directory")
    parser.add_argument("--tag", help="Tag name to classify by (default: config)")
    parser.add_argument("--tomador", help="Value meaning tomador (default: config)")
    parser.add_argument("--prestador", help="Value meaning prestador (default: config)")
    parser.add_argument("--workers", type=int, default=0, help="Parallel workers (0 = sequential)")
    parser.add_argument("--zip", action="store_true", help="Write one ZIP per category")
    parser.add_argument("--overwrite", action="store_true",
                        help="Replace existing category folders in the output directory")
    parser.add_argument("--save-issues", action="store_true", help="Write issues CSV")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def occupied_category_dirs(output_dir: Path) -> list:
    """Category folders under output_dir that already hold files."""
    return [
        output_dir / category.value for category in Category
        if (output_dir / category.value).is_dir() and any((output_dir / category.value).iterdir())
    ]


def main(argv=None) -> int:
    args = create_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    print("=" * 80)
    print("NFS-e BATCH SPLIT")
    print("=" * 80)

    # === Step 1: Resolve Configuration ===
    print("\n[Step 1] Loading configuration...")
    overrides = {
        key: value for key, value in (
            ('tag_name', args.tag),
            ('tomador_value', args.tomador),
            ('prestador_value', args.prestador),
        ) if value is not None
    }
    config = get_classification_config().with_updates(**overrides)
    summary = config_summary()
    print(f"  ✓ Tag: <{config.tag_name}>")
    print(f"    - Tomador value: {config.tomador_value!r}")
    print(f"    - Prestador value: {config.prestador_value!r}")
    print(f"    - Content extensions: {summary['content_extensions']}")

    output_dir = Path(args.output)
    occupied = [] if args.zip else occupied_category_dirs(output_dir)
    if occupied and not args.overwrite:
        print(f"  ✗ Output folders already hold files: {', '.join(str(p) for p in occupied)}")
        print("    Use --overwrite to replace them or pick another --output")
        return 2

    # === Step 2: Load Inputs ===
    print("\n[Step 2] Loading input files...")
    try:
        files = load_inputs(args.paths)
    except FileNotFoundError as e:
        print(f"  ✗ {e}")
        return 2
    print(f"  ✓ Loaded {len(files)} input file(s)")

    # === Step 3: Run Pipeline ===
    print("\n[Step 3] Splitting and classifying...")
    if args.workers > 0:
        try:
            pipeline = ParallelIngestionPipeline(max_workers=args.workers)
        except ValueError as e:
            print(f"  ✗ Invalid --workers: {e}")
            return 2
    else:
        pipeline = IngestionPipeline()

    start_time = datetime.now()
    try:
        result = pipeline.run(files, config=config)
    except ConfigurationError as e:
        print(f"  ✗ Configuration error: {e}")
        return 2
    elapsed = (datetime.now() - start_time).total_seconds()

    # === Step 4: Export ===
    print("\n[Step 4] Writing output...")
    for directory in occupied:
        shutil.rmtree(directory)
        print(f"  ✓ Cleared {directory}")
    for category in Category:
        if args.zip:
            path = pipeline.store.write_archive(category, output_dir / f"{category.value}.zip")
            print(f"  ✓ {Categories.get_title(category)}: {path}")
        else:
            written = pipeline.store.write_category(category, output_dir / category.value)
            print(f"  ✓ {Categories.get_title(category)}: {len(written)} file(s)")

    if args.save_issues:
        csv_path = save_issues_csv(result, output_dir / "issues")
        if csv_path:
            print(f"  📄 Issues saved to {csv_path}")

    # === Step 5: Display Results ===
    print("\n" + "=" * 80)
    print("SPLIT COMPLETE")
    print("=" * 80)
    print(f"\n⏱️  Total Time: {elapsed:.1f} seconds")
    print(f"\n📊 {result.summary()}")
    for issue in result.issues:
        marker = "⚠️ " if issue.severity == 'warning' else "✗"
        print(f"    {marker} {issue.file_name}: {issue.kind} - {issue.message}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
