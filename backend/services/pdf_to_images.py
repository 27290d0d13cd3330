"""
PDF to Images Converter - page rasterization for vision analysis
Renders selected PDF pages to base64 PNG images sized for the vision model
"""

import fitz  # PyMuPDF
import base64
import io
import logging
from typing import List, Optional
from PIL import Image
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MAX_IMAGE_BASE64_BYTES = 4 * 1024 * 1024
MIN_IMAGE_BASE64_CHARS = 100


@dataclass
class PageImage:
    """Represents a single PDF page as an image"""
    page_number: int  # 1-indexed
    image_base64: str
    width_px: int
    height_px: int
    scale: float

    @property
    def data_url(self) -> str:
        return f"data:image/png;base64,{self.image_base64}"


class PdfRasterizer:
    """Convert PDF pages to images for vision processing"""

    def __init__(
        self,
        max_base64_bytes: int = MAX_IMAGE_BASE64_BYTES,
        reduced_scale: float = 0.75,
        min_base64_chars: int = MIN_IMAGE_BASE64_CHARS
    ):
        self.max_base64_bytes = max_base64_bytes
        self.reduced_scale = reduced_scale
        self.min_base64_chars = min_base64_chars

    def render_pages(self, data: bytes, page_numbers: List[int], scale: float = 1.5) -> List[PageImage]:
        """
        Render specific pages of a PDF to images

        Args:
            data: Raw PDF bytes
            page_numbers: Pages to render (1-indexed); out-of-range pages are skipped
            scale: Render scale relative to 72 DPI

        Returns:
            PageImage objects for every page that rendered to a usable image
        """
        logger.info(f"Rendering pages {page_numbers} at scale {scale}")

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Could not open PDF for rendering: {e}")
            return []

        try:
            total_pages = doc.page_count
            page_images = []
            for page_number in page_numbers:
                if not 1 <= page_number <= total_pages:
                    logger.warning(f"Page {page_number} out of range (total: {total_pages})")
                    continue

                page_image = self._render_page(doc, page_number, scale)
                if page_image and len(page_image.image_base64) >= self.max_base64_bytes:
                    logger.info(f"Page {page_number} image too large, re-rendering at scale {self.reduced_scale}")
                    page_image = self._render_page(doc, page_number, self.reduced_scale)

                if page_image is None or len(page_image.image_base64) <= self.min_base64_chars:
                    logger.warning(f"Page {page_number} produced no usable image")
                    continue
                page_images.append(page_image)
        finally:
            doc.close()

        logger.info(f"Rendered {len(page_images)}/{len(page_numbers)} pages")
        return page_images

    def _render_page(self, doc: fitz.Document, page_number: int, scale: float) -> Optional[PageImage]:
        try:
            page = doc[page_number - 1]
            mat = fitz.Matrix(scale, scale)
            pix = page.get_pixmap(matrix=mat, alpha=False)

            img = Image.open(io.BytesIO(pix.tobytes("png")))
            img = to_rgb(img)

            buffered = io.BytesIO()
            img.save(buffered, format="PNG", optimize=True)
            img_base64 = base64.b64encode(buffered.getvalue()).decode('utf-8')

            logger.debug(f"Rendered page {page_number}: {img.width}x{img.height}px @ scale {scale}")
            return PageImage(
                page_number=page_number,
                image_base64=img_base64,
                width_px=img.width,
                height_px=img.height,
                scale=scale
            )
        except Exception as e:
            logger.error(f"Error rendering page {page_number}: {e}")
            return None


def to_rgb(img: Image.Image) -> Image.Image:
    """Drop transparency; vision models expect RGB"""
    if img.mode == 'RGBA':
        background = Image.new('RGB', img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[3])
        return background
    if img.mode != 'RGB':
        return img.convert('RGB')
    return img


def image_bytes_to_page_image(data: bytes, page_number: int = 1) -> PageImage:
    """Re-encode an uploaded raster image (PNG/JPEG/GIF/WEBP) as a PNG page image"""
    img = Image.open(io.BytesIO(data))
    img.load()
    img = to_rgb(img)

    buffered = io.BytesIO()
    img.save(buffered, format="PNG", optimize=True)
    return PageImage(
        page_number=page_number,
        image_base64=base64.b64encode(buffered.getvalue()).decode('utf-8'),
        width_px=img.width,
        height_px=img.height,
        scale=1.0
    )
