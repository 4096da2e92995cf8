"""
statemap-inspect - Query a statemap dataset from the command line.

Prints the same breakdowns the interactive explorer shows: state totals at a
point in time, per-entity occupancy over a span, and the occupancy of a state
broken down by tag values.
"""

import argparse
import logging
import sys
from typing import List, Optional

import colorama
from colorama import Fore, Style

from statemap.config import ViewerConfig
from statemap.data.breakdown_aggregator import BreakdownAggregator
from statemap.data.dataset import StatemapDataset, coerce_id
from statemap.utils.error_handler import ConfigError, DatasetError, setup_logging
from statemap.utils.time_format import format_percentage, time_units

# Configure logger
logger = logging.getLogger(__name__)

# Console colors
COLOR_WARNING = Fore.YELLOW
COLOR_ERROR = Fore.RED
COLOR_INFO = Fore.CYAN
COLOR_HEADER = Fore.MAGENTA + Style.BRIGHT
COLOR_RESET = Style.RESET_ALL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='statemap-inspect',
        description='Print state and tag breakdowns of a statemap dataset.',
    )
    parser.add_argument('dataset', help='Path to the statemap dataset (JSON)')
    parser.add_argument('--at', type=float, metavar='T',
                        help='Time offset (ns) for point breakdowns')
    parser.add_argument('--span', type=float, nargs=2, metavar=('T0', 'T1'),
                        help='Time offsets (ns) bounding an interval')
    parser.add_argument('--entity', help='Restrict to one entity (name or id)')
    parser.add_argument('--state', help='State to break down by tag (name or id)')
    parser.add_argument('--tag-key', help='Tag key to group by')
    parser.add_argument('--budget', type=int, help='Maximum tag rows to print')
    parser.add_argument('--config', help='Viewer configuration file')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    return parser


def print_header(text: str):
    print(f"{COLOR_HEADER}{text}{COLOR_RESET}")


def print_row(label, value: str):
    print(f"  {COLOR_INFO}{label!s:<24}{COLOR_RESET} {value}")


def print_summary(dataset: StatemapDataset):
    print_header(f"{len(dataset)} {dataset.entity_kind} entities over "
                 f"{time_units(dataset.time_width)}")
    for state in dataset.states.values():
        print_row(state.value, state.name)
    if dataset.notags:
        print(f"{COLOR_WARNING}No tag definitions{COLOR_RESET}")
    else:
        print_row('tag definitions', str(len(dataset.tag_definitions)))


def print_state_totals(dataset: StatemapDataset, aggregator: BreakdownAggregator,
                       time: float, entities):
    breakdown = aggregator.state_totals(time + dataset.begin, entities)
    print_header(f"States at {time_units(time)}:")
    for row in breakdown.rows:
        print_row(row.name, row.text)


def print_occupancy(dataset: StatemapDataset, aggregator: BreakdownAggregator,
                    time: float, end_time: float, entities):
    print_header(f"Occupancy from {time_units(time)} to {time_units(end_time)}:")
    for entity in entities:
        occupancy = aggregator.state_over_interval(
            entity, time + dataset.begin, end_time + dataset.begin)
        parts = [f"{dataset.state_name(state)} {format_percentage(weight * 100)}"
                 for state, weight in occupancy.items()]
        print_row(entity.name, ', '.join(parts) or '-')


def resolve_state(dataset: StatemapDataset, value: str):
    """
    Resolve a --state argument given either as a state name or as a state id.

    Args:
        dataset: Loaded statemap dataset
        value: Command line value

    Returns:
        The matching state id (the coerced value when no name matches)
    """
    for state in dataset.states.values():
        if state.name == value:
            return state.value
    return coerce_id(value)


def print_tag_breakdown(dataset: StatemapDataset, aggregator: BreakdownAggregator,
                        args, entities, budget: int):
    state = resolve_state(dataset, args.state)
    begin = dataset.begin

    if args.at is not None:
        time, end_time = args.at + begin, None
        where = f"at {time_units(args.at)}"
    elif args.span is not None:
        time, end_time = args.span[0] + begin, args.span[1] + begin
        where = "over span"
    else:
        time, end_time = begin, dataset.end_time
        where = "over span"

    breakdown = aggregator.tag_breakdown(entities, time, end_time, state,
                                         args.tag_key, budget=budget)

    print_header(f"{dataset.state_name(state)} by {args.tag_key} {where}:")
    if not breakdown.rows:
        print(f"{COLOR_WARNING}No samples matched{COLOR_RESET}")
        return

    for row in breakdown.rows:
        print_row(row.value, format_percentage(row.percentage))
    print_row(breakdown.total_row.value, format_percentage(breakdown.total))


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point of statemap-inspect.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        int: Process exit code
    """
    args = build_parser().parse_args(argv)

    colorama.init()
    try:
        return run(args)
    finally:
        colorama.deinit()


def run(args: argparse.Namespace) -> int:
    """Run the queries requested on the command line."""
    try:
        config = ViewerConfig(args.config)
        if args.budget is not None:
            config.set('tag_display_budget', args.budget)
    except ConfigError as e:
        print(f"{COLOR_ERROR}Configuration error: {e.message}{COLOR_RESET}", file=sys.stderr)
        return 2

    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level)
    setup_logging(level, config.log_file)

    try:
        dataset = StatemapDataset.load(args.dataset, strict=config.strict_validation)
    except DatasetError as e:
        logger.debug(e.details)
        print(f"{COLOR_ERROR}Error loading {args.dataset}: {e.message}{COLOR_RESET}",
              file=sys.stderr)
        return 1

    entities = list(dataset.entities)
    if args.entity:
        entity = dataset.entity(args.entity)
        if entity is None:
            print(f"{COLOR_ERROR}Unknown entity '{args.entity}'{COLOR_RESET}", file=sys.stderr)
            return 1
        entities = [entity]

    aggregator = BreakdownAggregator(dataset)

    if args.state is not None and args.tag_key:
        print_tag_breakdown(dataset, aggregator, args, entities,
                            config.tag_display_budget)
        return 0

    if args.at is None and args.span is None:
        print_summary(dataset)

    if args.at is not None:
        print_state_totals(dataset, aggregator, args.at, entities)

    if args.span is not None:
        print_occupancy(dataset, aggregator, args.span[0], args.span[1], entities)

    return 0


if __name__ == '__main__':
    sys.exit(main())
