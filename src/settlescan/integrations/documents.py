"""Turn uploaded files into page images: images pass through, PDFs are rasterized."""

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Protocol

import fitz  # PyMuPDF

from settlescan.models import PageItem

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})
SUPPORTED_MIME_TYPES = IMAGE_MIME_TYPES | {PDF_MIME_TYPE}


class UnsupportedDocumentError(ValueError):
    """Raised when a file is neither a supported image nor a PDF."""


class Rasterizer(Protocol):
    """Renders every page of a PDF to PNG bytes, in page order."""

    def rasterize(self, data: bytes) -> list[bytes]: ...


class PyMuPDFRasterizer:
    """
    PDF rasterizer backed by PyMuPDF.

    Pages are rendered at ``scale`` times their natural size.
    """

    def __init__(self, scale: float = 1.5) -> None:
        self.scale = scale

    def rasterize(self, data: bytes) -> list[bytes]:
        images: list[bytes] = []
        with fitz.open(stream=data, filetype="pdf") as pdf_document:
            matrix = fitz.Matrix(self.scale, self.scale)
            for page in pdf_document:
                pix = page.get_pixmap(matrix=matrix)
                images.append(pix.tobytes("png"))
        logger.debug("Rasterized %d PDF pages", len(images))
        return images


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


def load_document(
    path: Path, rasterizer: Rasterizer | None = None
) -> tuple[list[PageItem], bool]:
    """
    Load a file as page items.

    Args:
        path: Image or PDF file
        rasterizer: PDF rasterizer (default: PyMuPDFRasterizer)

    Returns:
        The pages and whether the file was a single image

    Raises:
        FileNotFoundError: If the file does not exist
        UnsupportedDocumentError: If the file type is not supported
    """
    if not path.exists() or not path.is_file():
        raise FileNotFoundError(f"Document not found: {path}")

    mime_type = guess_mime_type(path)
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise UnsupportedDocumentError(f"Unsupported file type {mime_type}: {path.name}")

    data = path.read_bytes()
    if mime_type in IMAGE_MIME_TYPES:
        page = PageItem(
            image_bytes=base64.b64encode(data).decode("ascii"),
            mime_type=mime_type,
            source_file_name=path.name,
        )
        return [page], True

    rasterizer = rasterizer or PyMuPDFRasterizer()
    pages = [
        PageItem(
            image_bytes=base64.b64encode(image).decode("ascii"),
            mime_type="image/png",
            source_file_name=path.name,
            page_index=index,
        )
        for index, image in enumerate(rasterizer.rasterize(data), start=1)
    ]
    return pages, False
