"""
Final document assembly.
Merges per-page PDF artifacts in the collector's order, prefixed by a rendered
table of contents, with one outline (bookmark) entry per page.
"""

import html
import io
import logging
from pathlib import Path
from typing import Optional, Sequence

from pypdf import PdfWriter
from pypdf.errors import PyPdfError

from sitepdf.errors import RenderError, SitePdfError
from sitepdf.interfaces import Assembler, Renderer
from sitepdf.models import PageResult

logger = logging.getLogger(__name__)

TOC_TEMPLATE = """<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>{title}</title>
<style>
body {{ font-family: sans-serif; margin: 2em; }}
h1 {{ text-align: center; font-size: 24pt; }}
li {{ margin-bottom: 10px; font-size: 12pt; }}
.url {{ display: block; font-size: 8pt; color: #666666; }}
</style></head>
<body><h1>Table of Contents</h1><ol>
{items}
</ol></body></html>
"""


def build_toc_html(results: Sequence[PageResult], title="Table of Contents"):
    items = "\n".join(
        f'<li>{html.escape(r.title)}<span class="url">{html.escape(r.url)}</span></li>'
        for r in results
    )
    return TOC_TEMPLATE.format(title=html.escape(title), items=items)


class PdfAssembler(Assembler):
    """
    FLOW: (optional) render the table of contents through the page renderer ->
    append each artifact with pypdf under an outline entry "N. Title" ->
    skip artifacts that pypdf cannot read -> write the output file.
    """

    def __init__(self, output_file, toc_renderer: Optional[Renderer] = None, title=None):
        self.output_file = Path(output_file)
        self.toc_renderer = toc_renderer
        self.title = title

    def _append_toc(self, writer, results):
        try:
            toc_pdf = self.toc_renderer.render(build_toc_html(results), "about:blank")
            writer.append(io.BytesIO(toc_pdf), outline_item="Table of Contents", import_outline=False)
        except (RenderError, PyPdfError, ValueError) as e:
            logger.warning(f"Table of contents could not be rendered, continuing without it: {e}")

    def assemble(self, results):
        if not results:
            raise ValueError("no pages to assemble")

        writer = PdfWriter()
        if self.toc_renderer is not None:
            self._append_toc(writer, results)

        merged = 0
        for index, result in enumerate(results, start=1):
            try:
                source = io.BytesIO(result.read_artifact())
                writer.append(source, outline_item=f"{index}. {result.title}", import_outline=False)
                merged += 1
            except (PyPdfError, ValueError, OSError) as e:
                logger.error(f"Skipping unreadable artifact for {result.url}: {e}")

        if merged == 0:
            raise SitePdfError("none of the collected artifacts could be merged")

        writer.add_metadata({
            "/Title": self.title or results[0].title,
            "/Producer": "sitepdf",
        })
        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_file, "wb") as f:
            writer.write(f)

        logger.info(f"PDF saved to {self.output_file} ({merged} page(s))")
        return self.output_file
