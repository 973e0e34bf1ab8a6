"""
Example: Headless Latency Benchmark

Loads every provider with valid credentials, measures all (or filtered)
models concurrently and prints them ranked by average latency.

    python examples/run_benchmark.py --filter llama --sample-size 5
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app import positive_int
from config import get_config, update_config
from latai.orchestrator import MeasurementOrchestrator
from latai.prompts import FilePromptSource, load_default_prompts
from latai.providers import load_providers
from latai.table import RankedTable, RowStatus
from latai.utils import calculate_statistics, format_duration, truncate_text


async def run(table: RankedTable, prompt_source, sample_size) -> None:
    """Measure every row and apply all outcomes."""
    orchestrator = MeasurementOrchestrator(table, prompt_source, sample_size=sample_size)
    orchestrator.measure_all()
    for outcome in await orchestrator.drain():
        print(f"  done: {outcome.model_name}")


def print_table(table: RankedTable) -> None:
    """Print the ranked results."""
    print(f"\n{'#':>3}  {'Model':<36} {'Provider':<10} {'Latency':>10} {'Jitter':>10}")
    print("-" * 74)
    for position, row in enumerate(table.rows, start=1):
        if row.status is RowStatus.MEASURED:
            stats = calculate_statistics(list(row.state.samples))
            latency = format_duration(row.latency_ms)
            jitter = format_duration(stats.jitter)
        else:
            latency, jitter = "err", "-"

        print(
            f"{position:>3}  {truncate_text(row.model.name, 36):<36} "
            f"{row.model.provider.value:<10} {latency:>10} {jitter:>10}"
        )

    failed = [row for row in table.rows if row.status is RowStatus.FAILED]
    if failed:
        print("\nErrors:")
        for row in failed:
            print(f"  {row.model.name}: {truncate_text(row.state.error or '', 120)}")


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Headless latency benchmark")
    parser.add_argument("--filter", default="", help="Model name filter")
    parser.add_argument("--sample-size", type=positive_int, default=None, help="Calls per model")
    return parser.parse_args(argv)


def main():
    """Run a headless latency benchmark."""
    args = parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    config = get_config()
    config = update_config(
        providers=config.providers,
        evaluator={"sample_size": args.sample_size},
        prompts=config.prompts,
        logging=config.logging,
        enabled_providers=config.enabled_providers,
        model_filter=args.filter,
    )

    print("=" * 60)
    print("Latai - Headless Benchmark")
    print("=" * 60)

    catalog = load_providers(config)
    for name, reason in catalog.unavailable.items():
        print(f"  skipped {name}: {reason}")
    if not catalog:
        print("Error: no provider could be loaded")
        print("Set OPENAI_API_KEY, GROQ_API_KEY or configure an AWS profile")
        return

    table = RankedTable.from_providers(catalog.providers, config.model_filter)
    print(f"\nModels to benchmark: {len(table)}")

    prompt_source = FilePromptSource(config.prompts.user_prompts_dir, load_default_prompts())
    asyncio.run(run(table, prompt_source, config.evaluator.sample_size))

    table.sort_ascending()
    print_table(table)


if __name__ == "__main__":
    main()
