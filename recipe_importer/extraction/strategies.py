"""
Per-MIME-type text extraction strategies.

Each supported type maps to an immutable ``ExtractionStrategy`` describing how
to obtain the file's bytes (download, Drive export, or a server-side copy into
a Google Doc followed by an export) and how to turn those bytes into text.
"""

import io
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Iterator, Mapping, Optional

import fitz  # PyMuPDF
from docx import Document
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

from recipe_importer.models import MimeType


@dataclass(frozen=True)
class ExtractionStrategy:
    """How to read one MIME type."""

    decoder: Callable[[bytes], str]
    # Target type for Drive exports (Google-native types and converted copies)
    export_mime_type: Optional[str] = None
    # Copy into a Google Doc on the Drive side, export the copy, then delete it
    convert_remotely: bool = False


def decode_utf8(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def decode_docx(data: bytes) -> str:
    """Paragraph and table text of a .docx file in document order."""
    document = Document(io.BytesIO(data))
    lines = []

    for child in document.element.body.iterchildren():
        if child.tag == qn("w:p"):
            lines.append(Paragraph(child, document).text)
        elif child.tag == qn("w:tbl"):
            for row in Table(child, document).rows:
                lines.append("\t".join(cell.text for cell in row.cells))

    return "\n".join(lines)


def assemble_pdf_text(pages: Iterable[Iterable[str]]) -> str:
    """Join text runs with a space and pages with a newline."""
    return "\n".join(" ".join(runs) for runs in pages)


def _page_text_runs(page: fitz.Page) -> Iterator[str]:
    for block in page.get_text("dict")["blocks"]:
        # Image blocks carry no lines
        for line in block.get("lines", []):
            for span in line["spans"]:
                if span["text"]:
                    yield span["text"]


def decode_pdf(data: bytes) -> str:
    with fitz.open(stream=data, filetype="pdf") as doc:
        pages = [list(_page_text_runs(page)) for page in doc]
    return assemble_pdf_text(pages)


STRATEGIES: Mapping[MimeType, ExtractionStrategy] = MappingProxyType(
    {
        MimeType.GOOGLE_DOC: ExtractionStrategy(decoder=decode_utf8, export_mime_type="text/plain"),
        MimeType.GOOGLE_SHEET: ExtractionStrategy(decoder=decode_utf8, export_mime_type="text/csv"),
        MimeType.PLAIN_TEXT: ExtractionStrategy(decoder=decode_utf8),
        MimeType.DOCX: ExtractionStrategy(decoder=decode_docx),
        MimeType.DOC: ExtractionStrategy(
            decoder=decode_utf8,
            export_mime_type="text/plain",
            convert_remotely=True,
        ),
        MimeType.PDF: ExtractionStrategy(decoder=decode_pdf),
    }
)
