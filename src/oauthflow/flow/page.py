"""Browser-facing success and failure pages.

The callback server answers the browser tab with one of two fixed pages.
:class:`PageRenderer` renders them from ``templates/callback.html.j2``; when
the template is missing or broken it falls back to the page's plain-text
message, so the tab always gets *something* and the flow's outcome is never
affected by a rendering problem.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from oauthflow.exceptions import RenderFailed

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
TEMPLATE_NAME = "callback.html.j2"


class PageOutcome(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class PageCopy:
    title: str
    heading: str
    message: str


PAGE_COPY: dict[PageOutcome, PageCopy] = {
    PageOutcome.SUCCESS: PageCopy(
        title="Successfully authorized!",
        heading="Successfully authorized!",
        message="You may now close this window and return to the terminal",
    ),
    PageOutcome.FAILURE: PageCopy(
        title="Authorization failed!",
        heading="Failed to authorize!",
        message="Head back to the terminal for error description. You may close this window",
    ),
}


@dataclass(frozen=True)
class RenderedPage:
    """A rendered page body plus the rendering error, if the fallback was used."""

    body: bytes
    content_type: str
    error: Optional[RenderFailed] = None


class PageRenderer:
    """Render callback pages from a Jinja2 template directory.

    Args:
        template_dir: Directory holding ``callback.html.j2``. Defaults to
            the package's bundled templates.
    """

    def __init__(self, template_dir: Optional[Path] = None) -> None:
        self.template_dir = template_dir or TEMPLATE_DIR
        self._env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(enabled_extensions=("html", "html.j2")),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_page(self, outcome: PageOutcome) -> RenderedPage:
        """Render *outcome*, reporting a template failure instead of raising."""
        outcome = PageOutcome(outcome)
        copy = PAGE_COPY[outcome]
        try:
            template = self._env.get_template(TEMPLATE_NAME)
            html = template.render(
                title=copy.title,
                heading=copy.heading,
                message=copy.message,
                success=outcome == PageOutcome.SUCCESS,
            )
        except (TemplateError, OSError) as exc:
            error = RenderFailed(f"Cannot render {outcome.value} page: {exc}")
            logger.warning("%s; falling back to plain text", error)
            return RenderedPage(
                body=copy.message.encode("utf-8"),
                content_type="text/plain; charset=utf-8",
                error=error,
            )
        return RenderedPage(body=html.encode("utf-8"), content_type="text/html; charset=utf-8")

    def render(self, outcome: PageOutcome) -> bytes:
        """Return the page body for *outcome*. Never raises."""
        return self.render_page(outcome).body
