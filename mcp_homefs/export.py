"""Markdown and PDF export.

Markdown export writes the source text verbatim. PDF export renders the text as
Markdown to HTML and hands the HTML to a PDF engine; the exporter only checks
that the engine produced a non-empty file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from markdown_it import MarkdownIt

from .errors import AlreadyExists, FsIOError, InvalidArgument, os_errors

logger = logging.getLogger(__name__)

PdfEngine = Callable[[str, Path], None]

SUPPORTED_FORMATS = ("md", "pdf")

_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
body {{ font-family: sans-serif; font-size: 11pt; line-height: 1.4; }}
pre, code {{ font-family: monospace; }}
</style>
</head>
<body>
{body}
</body>
</html>
"""


def render_html(markdown_text: str) -> str:
    """Render Markdown text into a standalone HTML document."""
    body = MarkdownIt("commonmark").enable("table").render(markdown_text)
    return _HTML_TEMPLATE.format(body=body)


def weasyprint_engine(html: str, output: Path) -> None:
    # Imported on use: WeasyPrint loads native libraries at import time.
    from weasyprint import HTML

    HTML(string=html).write_pdf(str(output))


class Exporter:
    def __init__(self, pdf_engine: Optional[PdfEngine] = None) -> None:
        self._pdf_engine = pdf_engine or weasyprint_engine

    def export(self, text: str, fmt: str, output: Path, overwrite: bool = False) -> None:
        if fmt not in SUPPORTED_FORMATS:
            raise InvalidArgument(f"Unsupported export format: {fmt!r}")
        if output.exists() and not overwrite:
            raise AlreadyExists(
                f"Output already exists: {output}. Pass overwrite=true to replace it.",
                path=output,
            )

        with os_errors(output):
            output.parent.mkdir(parents=True, exist_ok=True)
            if fmt == "md":
                output.write_text(text, encoding="utf-8")
                return

            html = render_html(text)
            try:
                self._pdf_engine(html, output)
            except OSError:
                raise
            except Exception as exc:
                raise FsIOError(f"PDF rendering failed for {output}: {exc}", path=output) from exc

            if not output.is_file() or output.stat().st_size == 0:
                raise FsIOError(f"PDF renderer did not produce {output}", path=output)
        logger.info("Exported %s (%s)", output, fmt)
