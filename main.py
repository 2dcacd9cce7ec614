#!/usr/bin/env python3
"""
cosm-orc - command line entry point

Thin wrapper around the orchestrator API for the common chores: storing a
directory of contracts and inspecting or comparing gas reports.

Usage:
    python main.py store --config CONFIG [--wasm-dir DIR] [--report OUT] [--registry OUT]
    python main.py report show REPORT
    python main.py report diff BEFORE AFTER [--metric mean|min|max|total|count]

Options:
    --debug             Enable debug logging
    --help              Show this help message

Examples:
    python main.py store --config config.yaml --report gas.json
    python main.py report diff main_gas.json branch_gas.json
"""

import sys
import argparse
import json
import logging
from typing import List, Optional

from cosm_orc import Config, ConfigError, OrchestratorError, create_orchestrator
from cosm_orc.profilers import Report, diff, DIFF_METRICS, DiffStatus

logger = logging.getLogger("cosm_orc.main")


def format_report(report: Report) -> str:
    """Render grouped statistics as a text table"""
    header = f"{'CONTRACT':<24} {'KIND':<12} {'OPERATION':<24} {'COUNT':>6} {'MIN':>10} {'MAX':>10} {'MEAN':>12}"
    lines = [header, "-" * len(header)]
    for key, stats in report.groups.items():
        lines.append(
            f"{key.contract_name:<24} {key.kind.value:<12} {key.op_name or '-':<24} "
            f"{stats.count:>6} {stats.min:>10} {stats.max:>10} {stats.mean:>12.1f}"
        )
    return "\n".join(lines)


def format_diff(entries) -> str:
    """Render diff entries as a text table"""
    def fmt(value, spec):
        if value is None:
            return format("absent", spec.split('.')[0].replace('+', ''))
        return format(value, spec)

    header = f"{'CONTRACT':<24} {'KIND':<12} {'OPERATION':<24} {'BEFORE':>12} {'AFTER':>12} {'DELTA':>12} {'%':>9}"
    lines = [header, "-" * len(header)]
    for entry in entries:
        key = entry.key
        marker = "" if entry.status == DiffStatus.UNCHANGED else f"  [{entry.status.value}]"
        lines.append(
            f"{key.contract_name:<24} {key.kind.value:<12} {key.op_name or '-':<24} "
            f"{fmt(entry.before, '>12.1f')} {fmt(entry.after, '>12.1f')} "
            f"{fmt(entry.delta, '>+12.1f')} {fmt(entry.percent_delta, '>+9.2f')}{marker}"
        )
    return "\n".join(lines)


def cmd_store(args) -> int:
    config = Config.from_yaml(args.config)
    wasm_dir = args.wasm_dir or config.wasm_dir
    if not wasm_dir:
        print("No wasm directory given (use --wasm-dir or set wasm_dir in the config)")
        return 2

    orchestrator, key = create_orchestrator(config)
    batch = orchestrator.store_contracts(wasm_dir, key)

    for result in batch.results:
        print(f"✓ {result.request.contract_name}: code id {result.response.code_id} "
              f"(gas used {result.gas_used:,})")

    if args.registry:
        with open(args.registry, 'w', encoding='utf-8') as f:
            json.dump(orchestrator.registry.to_dict(), f, indent=2)
        print(f"✓ Registry written to {args.registry}")

    if args.report:
        orchestrator.gas_report().save(args.report)
        print(f"✓ Gas report written to {args.report}")

    if not batch.ok:
        print(f"✗ {batch.error}")
        return 1
    return 0


def cmd_report_show(args) -> int:
    report = Report.load(args.report)
    print(format_report(report))
    return 0


def cmd_report_diff(args) -> int:
    before = Report.load(args.before)
    after = Report.load(args.after)
    print(format_diff(diff(before, after, metric=args.metric)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CosmWasm contract orchestrator and gas profiler")
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    store = subparsers.add_parser('store', help='Store every .wasm contract in a directory')
    store.add_argument('--config', required=True, help='YAML configuration file')
    store.add_argument('--wasm-dir', help='Directory of .wasm files (overrides config)')
    store.add_argument('--report', help='Write the gas report to this JSON file')
    store.add_argument('--registry', help='Write the contract registry to this JSON file')
    store.set_defaults(func=cmd_store)

    report = subparsers.add_parser('report', help='Inspect gas reports')
    report_commands = report.add_subparsers(dest='report_command', required=True)

    show = report_commands.add_parser('show', help='Print a gas report')
    show.add_argument('report', help='Report JSON file')
    show.set_defaults(func=cmd_report_show)

    compare = report_commands.add_parser('diff', help='Compare two gas reports')
    compare.add_argument('before', help='Baseline report JSON file')
    compare.add_argument('after', help='New report JSON file')
    compare.add_argument('--metric', choices=DIFF_METRICS, default='mean',
                         help='Statistic to compare (default: mean)')
    compare.set_defaults(func=cmd_report_diff)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    try:
        return args.func(args)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 2
    except OrchestratorError as e:
        print(f"Error: {e}")
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
