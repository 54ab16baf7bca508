"""
FunnelNav Reporting - output formats for attribution reports.

Supports:
- HTML via Jinja2 templates
- DataFrame / CSV export via pandas

Usage:
    from funnelnav.reporting import HTMLRenderer, export_csv

    html = HTMLRenderer().render_report(report)
    export_csv(report, "attribution.csv")
"""

from funnelnav.reporting.export import export_csv, summary_dataframe, to_dataframe
from funnelnav.reporting.html import HTMLRenderer

__all__ = [
    "HTMLRenderer",
    "to_dataframe",
    "summary_dataframe",
    "export_csv",
]
