#!/usr/bin/env python3
"""
Cluster Membership Filter CLI

Command-line interface for running the cluster membership filter over files.

Usage:
    python cli.py -i data.csv -o out.csv -c last -W em -- -N 3
    python cli.py -i data.csv -W kmeans -I 1-2 -- -N 4          # write CSV to stdout
    python cli.py -b -i train.csv -o train_out.csv \\
                  -r test.csv -s test_out.csv -c last -W em      # batch mode
    python cli.py -h                                             # filter help

Everything the CLI does not recognise (-W, -I and the clusterer options after
--) is passed on to the filter.
"""

import argparse
import sys
import uuid
from typing import List, Optional, Tuple

from membership_filter.config.settings_loader import ConfigManager, Settings
from membership_filter.filters.cluster_membership import ClusterMembership
from membership_filter.filters.runner import batch_filter, filter_incrementally
from membership_filter.schemas.data_models import Dataset
from membership_filter.storage.dataset_io import dataset_to_frame, load_dataset, save_dataset
from membership_filter.utils.advanced_logging import configure_logging, get_logger, run_context
from membership_filter.utils.error_handling import ConfigurationError, MembershipFilterError
from membership_filter.utils.options import describe_options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cli.py",
        description="Replace each record with its cluster membership probabilities.",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show filter help")
    parser.add_argument("-i", dest="input", help="Input file (CSV or JSONL)")
    parser.add_argument("-o", dest="output", help="Output file (stdout as CSV if omitted)")
    parser.add_argument("-c", dest="class_index", default=None, help="Label column: first, last or 1-based index")
    parser.add_argument("-b", dest="batch", action="store_true", help="Batch mode: fit on -i, apply to -r")
    parser.add_argument("-r", dest="second_input", help="Second input file (batch mode)")
    parser.add_argument("-s", dest="second_output", help="Second output file (batch mode)")
    parser.add_argument("--config", dest="config", help="Settings YAML file")
    parser.add_argument("--log-level", dest="log_level", help="Override log level")
    parser.add_argument("--log-format", dest="log_format", choices=["json", "console"], help="Override log format")
    return parser


def split_nested(argv: List[str]) -> Tuple[List[str], List[str]]:
    """Split argv at the first ``--``; the separator stays with the nested part."""
    if "--" not in argv:
        return list(argv), []
    index = argv.index("--")
    return list(argv[:index]), list(argv[index:])


def print_help(parser: argparse.ArgumentParser, filter_: ClusterMembership) -> None:
    print(ClusterMembership.global_info())
    print()
    print(parser.format_help())
    print(describe_options(filter_, title="Filter options:"))


def write_dataset(dataset: Dataset, path: Optional[str]) -> None:
    if path:
        save_dataset(dataset, path)
    else:
        dataset_to_frame(dataset).to_csv(sys.stdout, index=False)


def run_incremental(args: argparse.Namespace, filter_: ClusterMembership) -> None:
    if not args.input:
        raise ConfigurationError("No input file given (-i).")

    data = load_dataset(args.input, class_index=args.class_index)
    records = list(filter_incrementally(data.schema, data, filter_))
    write_dataset(Dataset(filter_.output_schema(), records), args.output)


def run_batch(args: argparse.Namespace, filter_: ClusterMembership) -> None:
    if not (args.input and args.second_input):
        raise ConfigurationError("Batch mode needs both -i and -r input files.")
    if not (args.output and args.second_output):
        raise ConfigurationError("Batch mode needs both -o and -s output files.")

    first = load_dataset(args.input, class_index=args.class_index)
    second = load_dataset(args.second_input, schema=first.schema)
    first_out, second_out = batch_filter(first, second, filter_)
    save_dataset(first_out, args.output)
    save_dataset(second_out, args.second_output)


def load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return ConfigManager.reload_config(config_path)
    return ConfigManager.get_settings()


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI; returns the process exit code."""
    argv = list(sys.argv[1:] if argv is None else argv)
    head, nested = split_nested(argv)
    parser = build_parser()
    args, filter_options = parser.parse_known_args(head)

    try:
        settings = load_settings(args.config)
    except MembershipFilterError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        return 1

    configure_logging(
        log_level=args.log_level or settings.logging.level,
        log_format=args.log_format or settings.logging.format,
        log_file=settings.logging.file,
        service_name=settings.service.name,
    )
    logger = get_logger(__name__)

    with run_context(uuid.uuid4().hex[:12]):
        try:
            filter_ = ClusterMembership()
            if args.help:
                print_help(parser, filter_)
                return 0

            filter_.set_options(filter_options + nested)
            if not filter_.ignored_attribute_indices and settings.filter.ignored_attribute_indices:
                filter_.ignored_attribute_indices = settings.filter.ignored_attribute_indices

            logger.info("filter_configured", options=filter_.get_options(), batch_mode=args.batch)

            if args.batch:
                run_batch(args, filter_)
            else:
                run_incremental(args, filter_)
        except MembershipFilterError as e:
            logger.error("filter_run_failed", **e.to_dict())
            print(f"❌ {e.message}", file=sys.stderr)
            return 1
        except Exception as e:
            logger.error("filter_run_failed", error=str(e), error_type=type(e).__name__, exc_info=True)
            print(f"❌ Filtering failed: {e}", file=sys.stderr)
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
