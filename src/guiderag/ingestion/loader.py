"""Guide loading: PDF, DOCX and plain-text extraction.

Uses PyMuPDF (fitz) for PDF text and python-docx for Word documents;
anything else is decoded as UTF-8.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Collection, Iterator, List

import docx
import fitz  # PyMuPDF

from guiderag.models import Document
from guiderag.utils.files import iter_guide_paths
from guiderag.utils.text import normalize_whitespace

LOGGER = logging.getLogger(__name__)


def iter_pdf_pages(path: Path) -> Iterator[str]:
    """Yield normalized text of each PDF page, skipping unreadable pages."""
    doc = fitz.open(path)
    try:
        for index in range(len(doc)):
            try:
                text = doc[index].get_text() or ""
            except Exception as exc:
                LOGGER.warning("Failed to read page %s in %s: %s", index, path, exc)
                continue
            normalized = normalize_whitespace(text.splitlines())
            if normalized:
                yield normalized
    finally:
        doc.close()


def read_pdf(path: Path) -> str:
    return "\n".join(iter_pdf_pages(path))


def read_docx(path: Path) -> str:
    document = docx.Document(str(path))
    return "\n".join(paragraph.text for paragraph in document.paragraphs if paragraph.text)


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def read_document(path: Path) -> Document:
    """Extract the text of a single guide file."""
    suffix = path.suffix.lower()
    if suffix == ".pdf":
        text = read_pdf(path)
    elif suffix == ".docx":
        text = read_docx(path)
    else:
        text = read_text(path)
    return Document(filename=path.name, text=text)


def read_documents(data_dir: Path, *, exclude: Collection[str] = ()) -> List[Document]:
    """Read every guide in ``data_dir``; unreadable files are logged and skipped."""
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        LOGGER.warning("Guide directory %s is not accessible", data_dir)
        return []

    documents: List[Document] = []
    for path in iter_guide_paths(data_dir, exclude=exclude):
        try:
            documents.append(read_document(path))
        except Exception as exc:
            LOGGER.warning("Failed to read %s: %s", path.name, exc)
    LOGGER.debug("Read %d guides from %s", len(documents), data_dir)
    return documents
