#!/usr/bin/env python3
"""CLI for population-uniqueness risk estimation."""

import argparse
import sys
import os
import json
import logging
import pandas as pd
from typing import List, Optional

from .config import RiskConfig, load_config
from .risk import DisclosureRiskAnalyzer, print_risk_report


def parse_args(argv: Optional[List[str]] = None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Estimate re-identification risk and population uniqueness of a microdata sample',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic usage (sampling fraction defaults to 0.1)
  uniqueness-risk data/adult.csv --qi-columns age,sex,zip

  # Known sampling fraction, compare Zayatz and SNB models
  uniqueness-risk data/adult.csv --qi-columns age,sex,zip --pi 0.3 --include-snb

  # Save the report and flag the highest-risk records
  uniqueness-risk data/adult.csv --qi-columns age,sex,zip \\
    --save-report risk.json --mark-output marked.csv
        """
    )

    parser.add_argument(
        'input_file',
        help='Input CSV file path'
    )
    parser.add_argument(
        '--qi-columns',
        dest='qi_columns',
        help='Comma-separated list of quasi-identifier columns'
    )
    parser.add_argument(
        '--pi',
        type=float,
        help='Sampling fraction, sample size / population size (default: 0.1)'
    )
    parser.add_argument(
        '--include-snb',
        dest='include_snb_model',
        action='store_true',
        default=None,
        help='Compare Zayatz and SNB models when pi > 0.1 and keep the smaller estimate'
    )
    parser.add_argument(
        '--max-iterations',
        type=int,
        dest='max_iterations',
        help='Iteration bound for the Newton-Raphson solver (default: 300)'
    )
    parser.add_argument(
        '--time-budget',
        type=float,
        dest='time_budget',
        help='Wall-clock limit in seconds for each Newton-Raphson solve'
    )
    parser.add_argument(
        '--config',
        help='JSON configuration file path'
    )
    parser.add_argument(
        '--save-report',
        dest='report_file',
        help='Save risk report to JSON file'
    )
    parser.add_argument(
        '--mark-output',
        dest='mark_file',
        help='Write input data with a "high_risk" column to this CSV file'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Verbose output (repeat for solver traces)'
    )

    return parser.parse_args(argv)


def build_config(args, config_file: Optional[str] = None) -> RiskConfig:
    """Merge defaults, config file and command-line flags (flags win)."""
    values = {}
    if config_file:
        values.update(load_config(config_file).to_dict())
    for key in ('include_snb_model', 'max_iterations', 'time_budget'):
        value = getattr(args, key, None)
        if value is not None:
            values[key] = value
    return RiskConfig.from_dict(values)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    args = parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format='%(levelname)s %(name)s: %(message)s',
        )

    if not os.path.exists(args.input_file):
        print(f"Error: Input file not found: {args.input_file}", file=sys.stderr)
        sys.exit(1)

    try:
        config = build_config(args, args.config)
    except (OSError, ValueError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if args.verbose and args.config:
        print(f"Loaded configuration from {args.config}")

    try:
        data = pd.read_csv(args.input_file)
        if args.verbose:
            print(f"Loaded {len(data)} rows, {len(data.columns)} columns")
    except Exception as e:
        print(f"Error loading data: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.qi_columns:
        print("Error: --qi-columns is required", file=sys.stderr)
        sys.exit(1)
    qi_columns = [c.strip() for c in args.qi_columns.split(',') if c.strip()]

    pi = args.pi if args.pi is not None else config.pi_default
    analyzer = DisclosureRiskAnalyzer(pi=pi, config=config)
    try:
        analyzer.fit(data, qi_columns)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    report = analyzer.risk_report()
    print_risk_report(report)

    if args.report_file:
        with open(args.report_file, 'w') as f:
            json.dump(report, f, indent=2, default=str)
        print(f"Risk report saved to {args.report_file}")

    if args.mark_file:
        marked = data.copy()
        marked['high_risk'] = analyzer.mark_high_risk_records()
        marked.to_csv(args.mark_file, index=False)
        print(f"Marked data saved to {args.mark_file}")

    return report


if __name__ == '__main__':
    main()
