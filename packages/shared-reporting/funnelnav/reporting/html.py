"""
HTMLRenderer - Jinja2-based HTML rendering of attribution reports.

Report templates live in a templates directory as ``<name>.html.j2``. The
bundled ``attribution_report`` template is used unless another name is
given; any other template in the directory receives the same context:

- ``title``: page title
- ``report``: the AttributionReport object
- ``summary``: ``report.to_dict()``
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

if TYPE_CHECKING:
    from funnelnav.attribution.report import AttributionReport

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "attribution_report"
TEMPLATE_SUFFIX = ".html.j2"
BUNDLED_TEMPLATES_DIR = Path(__file__).parent / "templates"


class HTMLRenderer:
    """
    Render attribution reports to HTML.

    Example:
        renderer = HTMLRenderer()
        if "attribution_report" in renderer.list_templates():
            html = renderer.render_report(report)
    """

    def __init__(self, templates_dir: Path | str | None = None):
        """
        Initialize HTML renderer.

        Args:
            templates_dir: Directory holding ``*.html.j2`` report templates
                (defaults to the bundled templates)
        """
        self.templates_dir = Path(templates_dir) if templates_dir else BUNDLED_TEMPLATES_DIR
        self._env: Environment | None = None

    @property
    def env(self) -> Environment:
        """Lazy initialization of Jinja2 environment."""
        if self._env is None:
            env = Environment(
                loader=FileSystemLoader(str(self.templates_dir)),
                # Client rows come from uploaded exports
                autoescape=select_autoescape(["html", "xml", "html.j2"]),
            )
            env.filters.update(
                format_currency=self._format_currency,
                format_percent=self._format_percent,
                format_rate=self._format_rate,
                format_number=self._format_number,
            )
            self._env = env

        return self._env

    def list_templates(self) -> list[str]:
        """Return the report template names in the templates directory, sorted."""
        if not self.templates_dir.is_dir():
            return []
        return sorted(
            path.name.removesuffix(TEMPLATE_SUFFIX)
            for path in self.templates_dir.glob(f"*{TEMPLATE_SUFFIX}")
        )

    def render(self, template: str, data: dict[str, Any]) -> str:
        """
        Render a template by name (without extension).

        Raises:
            TemplateNotFound: If ``template`` is not in the templates directory.
        """
        return self.env.get_template(f"{template}{TEMPLATE_SUFFIX}").render(**data)

    def render_report(
        self,
        report: AttributionReport,
        template: str = DEFAULT_TEMPLATE,
        title: str = "Attribution Report",
    ) -> str:
        """
        Render an attribution report.

        Args:
            report: Report returned by the attribution engine
            template: Report template name, one of ``list_templates()``
            title: Page title

        Returns:
            Rendered HTML string

        Raises:
            TemplateNotFound: If ``template`` is not available.
        """
        available = self.list_templates()
        if template not in available:
            raise TemplateNotFound(
                f"Unknown report template '{template}' in {self.templates_dir} "
                f"(available: {', '.join(available) or 'none'})"
            )

        logger.debug(f"Rendering {report.total_clients} clients with template '{template}'")
        return self.render(
            template,
            {"title": title, "report": report, "summary": report.to_dict()},
        )

    @staticmethod
    def _format_currency(value: float, symbol: str = "$") -> str:
        """Format number as currency."""
        return f"{symbol}{value:,.2f}"

    @staticmethod
    def _format_percent(value: float, decimals: int = 1) -> str:
        """Format a 0-1 ratio as percentage."""
        return f"{value * 100:.{decimals}f}%"

    @staticmethod
    def _format_rate(value: float, decimals: int = 1) -> str:
        """Format a value already expressed in percent (funnel rates)."""
        return f"{value:.{decimals}f}%"

    @staticmethod
    def _format_number(value: float, decimals: int = 0) -> str:
        """Format number with thousands separator."""
        return f"{value:,.{decimals}f}"
