"""
Scorecard Optimizer - Main Launcher
Command line entry point.

Usage:
    python -m scorecard_optimizer optimize --data customers.csv --target churned
    python -m scorecard_optimizer optimize --data customers.csv --target churned --method search
    python -m scorecard_optimizer score --data customers.csv
    python -m scorecard_optimizer abtest --customers 10000 --rates 0.10,0.15
"""

import sys
import json
import random
import argparse
import logging
from pathlib import Path


def setup_cli_logging(verbose: bool = False):
    """Configure console logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )


def _load_config(args):
    from scorecard_optimizer.utils.config import load_config, get_logging_config
    from scorecard_optimizer.utils.logging import setup_logging

    config = load_config(args.config)

    # File logs only when a log directory is configured
    log_cfg = get_logging_config(config)
    if log_cfg.get('dir'):
        setup_logging(
            log_dir=log_cfg['dir'],
            console_level='DEBUG' if args.verbose else log_cfg.get('console_level', 'INFO'),
            retention_days=log_cfg.get('retention_days', 30)
        )

    return config


def _load_records(args, target=None):
    """Read the CSV given by --data into customer records."""
    import pandas as pd
    from scorecard_optimizer.core.optimizer.preprocessor import FeaturePreprocessor, to_records
    from scorecard_optimizer.utils.logging import get_cli_logger

    data_path = Path(args.data)
    if not data_path.exists():
        print(f"Error: File not found: {data_path}")
        return None

    df = pd.read_csv(data_path)
    get_cli_logger().info(f"Loaded {len(df)} rows from {data_path}")

    if args.preprocess:
        preprocessor = FeaturePreprocessor(target=target)
        df = preprocessor.handle_outliers(df)
        df = preprocessor.fit_transform(df)

    return to_records(df)


def cmd_optimize(args, config):
    """Optimize weights from a labelled CSV."""
    from scorecard_optimizer.data.database import init_database
    from scorecard_optimizer.core.optimizer.scorecard_service import ScorecardService

    records = _load_records(args, target=args.target)
    if records is None:
        return 1

    db_path = args.database or config.get('database', {}).get('path')
    db = init_database(db_path)
    session = db.get_new_session()

    try:
        service = ScorecardService(config=config, session=session)
        result = service.optimize(
            records,
            args.target,
            method=args.method,
            iterations=args.iterations,
            seed=args.seed
        )

        print(service.optimizer.generate_report(result))

        if args.output:
            with open(args.output, 'w') as f:
                json.dump(result.weights, f, indent=2)
            print(f"\nWeights written to: {args.output}")

        return 0 if result.succeeded else 1

    finally:
        session.close()
        db.close()


def cmd_score(args, config):
    """Score every customer in a CSV."""
    from scorecard_optimizer.utils.config import get_optimizer_config
    from scorecard_optimizer.core.optimizer.scorecard_service import ScorecardService

    records = _load_records(args)
    if records is None:
        return 1

    if args.weights:
        with open(args.weights, 'r') as f:
            weights = json.load(f)
        config = dict(config)
        config['optimizer'] = dict(get_optimizer_config(config), default_weights=weights)

    if args.threshold is not None:
        config = dict(config)
        config['scoring'] = dict(config.get('scoring', {}), threshold=args.threshold)

    service = ScorecardService(config=config)

    healthy = 0
    for i, record in enumerate(records):
        result = service.score(record, explain=args.explain)
        customer = result.customer_id or f"row {i + 1}"
        status = "HEALTHY" if result.prediction else "AT RISK"
        print(f"{customer:20} {result.score:6.1f}  {status}")
        if result.explanation:
            print(result.explanation)
            print()
        healthy += result.prediction

    print(f"\n{healthy}/{len(records)} customers healthy "
          f"(threshold {service.scorer.threshold:.2f})")
    return 0


def cmd_abtest(args, config):
    """Simulate an A/B test with known conversion rates."""
    from scorecard_optimizer.core.optimizer.scorecard_service import ScorecardService

    try:
        rates = [float(r) for r in args.rates.split(',')]
    except ValueError:
        print(f"Error: Invalid rates: {args.rates}")
        return 1

    service = ScorecardService(config=config)
    weights = service.get_weights()

    variants = [{'name': 'control', 'weights': weights}]
    for i in range(1, len(rates)):
        variants.append({'name': f'variant_{i}', 'weights': weights})
    rate_by_variant = {v['name']: rate for v, rate in zip(variants, rates)}

    if service.setup_ab_test(args.name, variants) is None:
        print(f"Error: Could not set up A/B test '{args.name}'")
        return 1

    rng = random.Random(args.seed)
    for i in range(args.customers):
        variant = service.assign_variant(args.name, f"cust_{i}")
        converted = rng.random() < rate_by_variant[variant.name]
        service.record_conversion(args.name, variant.name, converted)

    print(service.ab_manager.generate_report(args.name))
    return 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Customer Health Scorecard Optimizer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  optimize       Learn weights from a labelled customer CSV
  score          Score customers in a CSV
  abtest         Simulate an A/B test between weight maps

Examples:
  python -m scorecard_optimizer optimize --data customers.csv --target churned
  python -m scorecard_optimizer optimize --data customers.csv --target churned --method search --seed 7
  python -m scorecard_optimizer score --data customers.csv --threshold 0.6 --explain
  python -m scorecard_optimizer abtest --customers 10000 --rates 0.10,0.15

Config search order:
  1. -c <path> (command line)
  2. scorecard_optimizer/user_config.yaml
  3. scorecard_optimizer/config/config.yaml
        """
    )

    parser.add_argument(
        '-c', '--config',
        help='Path to config YAML file (default: user_config.yaml)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Optimize command
    optimize_parser = subparsers.add_parser('optimize', help='Learn weights from data')
    optimize_parser.add_argument('--data', required=True, help='Customer CSV file')
    optimize_parser.add_argument('--target', required=True, help='Outcome column (e.g. churned)')
    optimize_parser.add_argument(
        '--method',
        default='correlation',
        choices=['correlation', 'search'],
        help='Optimization method (default: correlation)'
    )
    optimize_parser.add_argument('--iterations', type=int, help='Search iterations')
    optimize_parser.add_argument('--seed', type=int, help='Random seed for search')
    optimize_parser.add_argument('--preprocess', action='store_true',
                                 help='Cap outliers and scale features to [0, 1] first')
    optimize_parser.add_argument('-d', '--database', help='Database path for run history')
    optimize_parser.add_argument('-o', '--output', help='Write weights to a JSON file')

    # Score command
    score_parser = subparsers.add_parser('score', help='Score customers')
    score_parser.add_argument('--data', required=True, help='Customer CSV file')
    score_parser.add_argument('--threshold', type=float, help='Prediction threshold (0-1)')
    score_parser.add_argument('--weights', help='JSON file of weights (default: config)')
    score_parser.add_argument('--explain', action='store_true', help='Print explanations')
    score_parser.add_argument('--preprocess', action='store_true',
                              help='Cap outliers and scale features to [0, 1] first')

    # A/B test command
    abtest_parser = subparsers.add_parser('abtest', help='Simulate an A/B test')
    abtest_parser.add_argument('--customers', type=int, default=1000,
                               help='Number of simulated customers')
    abtest_parser.add_argument('--rates', default='0.10,0.15',
                               help='Conversion rate per variant, control first')
    abtest_parser.add_argument('--seed', type=int, help='Random seed')
    abtest_parser.add_argument('--name', default='simulated', help='Test name')

    args = parser.parse_args(argv)

    setup_cli_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    config = _load_config(args)

    if args.command == 'optimize':
        return cmd_optimize(args, config)
    elif args.command == 'score':
        return cmd_score(args, config)
    elif args.command == 'abtest':
        return cmd_abtest(args, config)

    parser.print_help()
    return 0


if __name__ == '__main__':
    sys.exit(main())
