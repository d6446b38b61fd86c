"""
PDF Export

Turns a rendered invoice (a raster image) into ``invoice-<number>.pdf``.

DESIGN DECISION: The PDF is image-based, like a screenshot of the preview
placed on an A4 page. The image is scaled to fit the page by the smaller of
the width and height ratios, centered horizontally and aligned to the top.

The file is written to a temporary name and renamed only once Pillow has
finished, so a failed export never leaves a half-written PDF behind.
"""

import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import structlog
from PIL import Image

from invoice_manager.models.invoice import Invoice


logger = structlog.get_logger(__name__)

# A4 in millimetres
A4_SIZE_MM = (210.0, 297.0)
MM_PER_INCH = 25.4

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class ExportError(Exception):
    """Base exception for document export errors."""
    pass


def pdf_filename(invoice: Invoice) -> str:
    """``invoice-INV-0001.pdf``; path separators and the like become '_'."""
    safe_number = _UNSAFE_FILENAME_CHARS.sub("_", invoice.invoice_number)
    return f"invoice-{safe_number}.pdf"


class DocumentExporter(ABC):
    """Hand it a rendered document, get back a saved file."""

    @abstractmethod
    def export(
        self,
        document: Image.Image,
        invoice: Invoice,
        output_dir: Path,
    ) -> Path:
        """
        Save ``document`` as a file named after ``invoice``.

        Returns:
            Path of the written file

        Raises:
            ExportError: On any rendering or write failure
        """
        pass


class PdfExporter(DocumentExporter):
    """
    Image-based PDF exporter using Pillow.

    Args:
        dpi: Resolution of the A4 page
    """

    def __init__(self, dpi: int = 150):
        self._dpi = dpi

    @property
    def page_size(self) -> tuple[int, int]:
        """A4 page size in pixels at the configured resolution."""
        width_mm, height_mm = A4_SIZE_MM
        return (
            round(width_mm / MM_PER_INCH * self._dpi),
            round(height_mm / MM_PER_INCH * self._dpi),
        )

    def layout_page(self, document: Image.Image) -> Image.Image:
        """Place the document on a white A4 page."""
        page_width, page_height = self.page_size
        image_width, image_height = document.size
        ratio = min(page_width / image_width, page_height / image_height)

        scaled_size = (
            max(1, round(image_width * ratio)),
            max(1, round(image_height * ratio)),
        )
        scaled = document.convert("RGB").resize(scaled_size, Image.Resampling.LANCZOS)

        page = Image.new("RGB", (page_width, page_height), "white")
        offset_x = (page_width - scaled_size[0]) // 2
        page.paste(scaled, (offset_x, 0))
        return page

    def export(
        self,
        document: Image.Image,
        invoice: Invoice,
        output_dir: Path,
    ) -> Path:
        output_dir = Path(output_dir)
        target = output_dir / pdf_filename(invoice)
        tmp_path = None

        try:
            if not isinstance(document, Image.Image):
                raise TypeError(
                    f"Expected a rendered image, got {type(document).__name__}"
                )

            page = self.layout_page(document)

            output_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".invoice-", suffix=".pdf.tmp", dir=output_dir
            )
            os.close(fd)
            tmp_path = Path(tmp_name)

            page.save(tmp_path, format="PDF", resolution=float(self._dpi))
            os.replace(tmp_path, target)
            tmp_path = None
        except Exception as e:
            logger.error(
                "pdf_export_failed",
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                error=str(e),
            )
            raise ExportError("Failed to generate PDF") from e
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

        return target
