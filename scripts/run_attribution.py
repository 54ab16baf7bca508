#!/usr/bin/env python3
"""Run waterfall attribution on a JSON input bundle.

This script:
1. Loads a bundle (clients, sequence statistics, Instagram leads, audits, contacts)
2. Runs the waterfall attribution engine
3. Prints the summary and optionally writes HTML / CSV / JSON exports

Usage:
    python scripts/run_attribution.py bundle.json --html report.html --csv clients.csv
    python scripts/run_attribution.py bundle.json --html report.html --template my_report \
        --templates-dir ./templates
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from funnelnav.attribution import AttributionConfig, load_bundle, run_attribution
from funnelnav.attribution.exceptions import AttributionError
from funnelnav.reporting import HTMLRenderer, export_csv
from funnelnav.reporting.html import DEFAULT_TEMPLATE


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Waterfall client attribution")
    parser.add_argument("bundle", type=Path, help="JSON file with the input bundle")
    parser.add_argument("--html", type=Path, help="Write an HTML report to this path")
    parser.add_argument(
        "--template",
        default=DEFAULT_TEMPLATE,
        help=f"HTML report template name (default: {DEFAULT_TEMPLATE})",
    )
    parser.add_argument(
        "--templates-dir",
        type=Path,
        default=None,
        help="Directory with *.html.j2 report templates (default: bundled templates)",
    )
    parser.add_argument("--csv", type=Path, help="Write per-client decisions to this CSV path")
    parser.add_argument("--json", type=Path, help="Write the full report as JSON to this path")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def print_summary(report):
    """Print the attribution summary."""
    print("=" * 60)
    print("Attribution summary")
    print("=" * 60)
    print(f"  Total clients:      {report.total_clients}")
    print(f"  Attributed clients: {report.attributed_clients}")
    print(f"  Attribution rate:   {report.attribution_rate_display}")
    print()
    for source, count in report.attribution_breakdown.items():
        revenue = report.revenue_breakdown.get(source, 0.0)
        print(f"  {source:35} {count:6}  ${revenue:,.2f}")


def main(argv=None):
    """Run attribution from the command line."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    renderer = HTMLRenderer(args.templates_dir)
    if args.html and args.template not in renderer.list_templates():
        available = ", ".join(renderer.list_templates()) or "none"
        print(
            f"Error: unknown template '{args.template}' (available: {available})",
            file=sys.stderr,
        )
        return 1

    try:
        data = json.loads(args.bundle.read_text())
        bundle = load_bundle(data, strict=True)
        report = run_attribution(
            bundle,
            config=AttributionConfig.from_env(),
            progress_callback=lambda p: logging.info(f"[{p['progress']:3}%] {p['message']}"),
            max_workers=args.workers,
        )
    except (OSError, json.JSONDecodeError, AttributionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_summary(report)

    if args.html:
        args.html.write_text(renderer.render_report(report, template=args.template))
        print(f"\nHTML report written to {args.html}")
    if args.csv:
        export_csv(report, args.csv)
        print(f"CSV written to {args.csv}")
    if args.json:
        args.json.write_text(json.dumps(report.to_dict(), indent=2, default=str))
        print(f"JSON written to {args.json}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
