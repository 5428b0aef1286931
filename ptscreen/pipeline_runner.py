"""
Main pipeline runner for PT equipment classification.
Ingests an inventory export, classifies every record and saves the results.
"""
import argparse
import logging
import threading
import time
from pathlib import Path
from typing import List, Optional

import pandas as pd

from . import config
from .categorisation import Classifier
from .compose import EngineConfiguration, load_configuration
from .default_profile import load_default_configuration
from .filtering import ResultFilter
from .ingest import RecordIngester
from .io_utils import save_metadata, save_results
from .models import FilterOptions
from .summary import get_batch_stats, get_category_summary, results_to_dataframe

logger = logging.getLogger(__name__)


class ClassificationPipeline:
    """
    Complete classification pipeline: ingestion, classification, filtering.
    """

    def __init__(self,
                 configuration: EngineConfiguration,
                 n_jobs: Optional[int] = None,
                 filter_options: Optional[FilterOptions] = None):
        self.configuration = configuration
        self.n_jobs = n_jobs
        self.filter_options = filter_options
        self.cancel_event = threading.Event()

        # Pipeline components
        self.ingester = None
        self.classifier = Classifier(configuration)
        self.result_filter = ResultFilter.from_configuration(configuration)

        # Results
        self.records = None
        self.results = None
        self.filtered = None
        self.stats = None

        logger.info(f"🚀 Pipeline initialized ({n_jobs or 1} worker(s))")

    def run(self, input_path: str, output_path: str = None) -> pd.DataFrame:
        """
        Run the complete pipeline.

        Args:
            input_path: Path to a CSV/parquet/feather inventory export
            output_path: Path for the results file (not saved if None)

        Returns:
            DataFrame with the (filtered) classification results
        """
        start_time = time.time()

        logger.info("🏁 Starting PT classification pipeline")
        logger.info(f"📁 Input: {input_path}")

        # Step 1: Ingestion
        self.records = self._run_ingestion(input_path)

        # Step 2: Classification
        self.results = self._run_classification()

        # Step 3: Filtering
        self.filtered = self._run_filtering()

        # Step 4: Save Results (skip markers are kept when nothing was filtered)
        if self._has_facets():
            final_results = results_to_dataframe(self.filtered)
        else:
            final_results = results_to_dataframe(self.results, include_skipped=True)
        if output_path:
            save_results(final_results, output_path)
            logger.info(f"💾 Results saved to {output_path}")

        elapsed = time.time() - start_time
        self._log_pipeline_summary(elapsed)

        return final_results

    def _has_facets(self) -> bool:
        if self.filter_options is None:
            return False
        return bool(self.filter_options.model_dump(exclude_none=True))

    def _run_ingestion(self, input_path: str) -> List[dict]:
        """Step 1: Load the export and map columns to record fields."""
        logger.info("🔄 Running data ingestion...")
        self.ingester = RecordIngester()
        self.ingester.load_file(input_path)
        self.ingester.detect_columns()
        return self.ingester.to_records()

    def _run_classification(self) -> list:
        """Step 2: Classify every record."""
        logger.info("🔄 Running classification...")
        return self.classifier.classify_batch(self.records, n_jobs=self.n_jobs, cancel_event=self.cancel_event)

    def _run_filtering(self) -> list:
        """Step 3: Apply filter facets (drops skip markers)."""
        filtered = self.result_filter.apply(self.results, self.filter_options)
        logger.info(f"✅ {len(filtered):,} results after filtering")
        return filtered

    def _log_pipeline_summary(self, elapsed_time: float):
        """Log pipeline execution summary."""
        self.stats = get_batch_stats(self.results)

        logger.info("🎉 Pipeline execution complete!")
        logger.info("=" * 60)
        logger.info(f"⏱️  Total time: {elapsed_time:.1f} seconds")
        logger.info(f"📊 Processed: {len(self.records):,} records")
        logger.info(f"✅ Accepted: {self.stats['accepted']:,}  "
                    f"🔍 Review: {self.stats['review']:,}  "
                    f"❌ Rejected: {self.stats['rejected']:,}  "
                    f"⏭️  Skipped: {self.stats['skipped']:,}")
        logger.info(f"📈 Average confidence: {self.stats['average_score']:.1f}")

        summary = get_category_summary(self.results)
        if not summary.empty:
            logger.info("\n📈 Category Distribution:")
            for _, row in summary.iterrows():
                logger.info(f"  {row['category']}: {row['total_items']} items ({row['percentage']:.1f}%)")

        logger.info("=" * 60)


def main(argv: Optional[List[str]] = None):
    """Command-line interface for the pipeline."""
    parser = argparse.ArgumentParser(
        description="PT Equipment Classification Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m ptscreen.pipeline_runner --input data/items.csv
  python -m ptscreen.pipeline_runner --input data/items.csv --config engine.json --jobs 4
  python -m ptscreen.pipeline_runner --input data/items.csv --status accepted review --min-score 40
        """
    )

    # Required arguments
    parser.add_argument('--input', required=True, help='Input CSV/parquet/feather file path')

    # Optional arguments
    parser.add_argument('--config', help='Engine configuration JSON (bundled profile if not specified)')
    parser.add_argument('--output', help='Output file path (auto-generated if not specified)')
    parser.add_argument('--jobs', type=int, default=config.N_JOBS,
                        help='Worker threads for classification (default: sequential)')

    # Filter facets
    parser.add_argument('--status', nargs='+', choices=['accepted', 'review', 'rejected'],
                        help='Keep only these statuses')
    parser.add_argument('--category', nargs='+', help='Keep only these categories (soft match)')
    parser.add_argument('--query', help='Free-text query that every kept record must match')
    parser.add_argument('--min-score', type=float, help='Minimum confidence')
    parser.add_argument('--max-score', type=float, help='Maximum confidence')

    # Configuration overrides
    parser.add_argument('--format', choices=['csv', 'parquet', 'feather'], default=config.OUTPUT_FORMAT,
                        help=f'Output format (default: {config.OUTPUT_FORMAT})')
    parser.add_argument('--log-level', default=config.LOG_LEVEL, help=f'Log level (default: {config.LOG_LEVEL})')

    args = parser.parse_args(argv)

    # Override configuration
    config.override_config(OUTPUT_FORMAT=args.format, LOG_LEVEL=args.log_level.upper(), N_JOBS=args.jobs)

    # Configure logging
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    configuration = load_configuration(args.config) if args.config else load_default_configuration()

    filter_options = FilterOptions(
        status=args.status,
        category=args.category,
        query=args.query,
        min_score=args.min_score,
        max_score=args.max_score,
    )

    pipeline = ClassificationPipeline(configuration, n_jobs=args.jobs, filter_options=filter_options)

    # Generate output path if not specified
    output_path = args.output
    if not output_path:
        input_stem = Path(args.input).stem
        output_path = str(config.get_artifact_path(f"{input_stem}_classified", config.OUTPUT_FORMAT))

    try:
        results = pipeline.run(args.input, output_path)

        metadata = {
            'input_file': args.input,
            'config_file': args.config,
            'output_file': output_path,
            'total_records': len(pipeline.records),
            'results_saved': len(results),
            'stats': pipeline.stats,
            'execution_time': time.time()
        }
        save_metadata(metadata, Path(output_path).with_name(f"{Path(output_path).stem}_metadata.json"))

        print(f"\n✅ Success! Results saved to: {output_path}")

    except Exception as e:
        logger.error(f"❌ Pipeline failed: {e}")
        raise


if __name__ == "__main__":
    main()
