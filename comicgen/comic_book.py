"""Printable PDF rendering of a finished comic.

Layout at 100 dpi on US Letter (850x1100 px): a cover page with the title
over the cover art, one page per four panels in a 2x2 grid, and a credits
page. Panels with text get a yellow caption box under the image holding the
narration and the ``Name: speech`` dialogue lines.
"""

import io
import logging
from typing import Optional

from PIL import Image, ImageDraw, ImageOps

from .config import TOTAL_STORY_PAGES
from .drawing import decode_image, draw_wrapped, get_font, line_height, text_width, wrap_text
from .state.project import PanelScript, Project

logger = logging.getLogger(__name__)

PAGE_SIZE = (850, 1100)
PAGE_COLOR = "#1f2937"
PANEL_COLOR = "#111827"
CAPTION_COLOR = "#fde047"
PLACEHOLDER_COLOR = "#6b7280"
MARGIN = 24
GUTTER = 16


class ComicBookRenderer:
    """Renders a ``Project`` into a multi-page PDF."""

    def __init__(self, project: Project, credits_line: str = "Created with ComicGen"):
        self.project = project
        self.credits_line = credits_line

    def render_pages(self) -> list[Image.Image]:
        pages = [self._cover_page()]
        pages.extend(self._story_page(index) for index in range(TOTAL_STORY_PAGES))
        pages.append(self._credits_page())
        return pages

    def render_pdf(self) -> bytes:
        """The whole comic as PDF bytes."""
        pages = self.render_pages()
        buffer = io.BytesIO()
        pages[0].save(buffer, format="PDF", save_all=True, append_images=pages[1:], resolution=100.0)
        logger.info("Rendered %d-page comic book (%d bytes)", len(pages), buffer.tell())
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def _blank_page(self) -> Image.Image:
        return Image.new("RGB", PAGE_SIZE, PAGE_COLOR)

    def _cover_page(self) -> Image.Image:
        page = self._blank_page()
        cover = self._load(self.project.cover_image)
        if cover is not None:
            page.paste(ImageOps.fit(cover, PAGE_SIZE), (0, 0))

        title = self.project.comic_title
        if title:
            draw = ImageDraw.Draw(page)
            font = get_font(64)
            lines = wrap_text(title, font, PAGE_SIZE[0] - 2 * MARGIN)
            step = line_height(font)
            y = int(PAGE_SIZE[1] * 0.95) - step * len(lines)
            for line in lines:
                x = (PAGE_SIZE[0] - text_width(font, line)) // 2
                # Drop shadow
                draw.text((x + 4, y + 4), line, font=font, fill="black")
                draw.text((x, y), line, font=font, fill="white")
                y += step
        return page

    def _story_page(self, story_page: int) -> Image.Image:
        page = self._blank_page()
        cell_width = (PAGE_SIZE[0] - 2 * MARGIN - GUTTER) // 2
        cell_height = (PAGE_SIZE[1] - 2 * MARGIN - GUTTER) // 2

        for position, (_, script, image) in enumerate(self.project.page_panels(story_page)):
            left = MARGIN + (position % 2) * (cell_width + GUTTER)
            top = MARGIN + (position // 2) * (cell_height + GUTTER)
            self._draw_panel(page, (left, top, left + cell_width, top + cell_height), script, image)
        return page

    def _credits_page(self) -> Image.Image:
        page = self._blank_page()
        draw = ImageDraw.Draw(page)
        heading = get_font(48)
        sub = get_font(24)
        center_y = PAGE_SIZE[1] // 2

        x = (PAGE_SIZE[0] - text_width(heading, self.credits_line)) // 2
        draw.text((x, center_y - line_height(heading)), self.credits_line, font=heading, fill="white")
        tagline = "Use Responsibly."
        x = (PAGE_SIZE[0] - text_width(sub, tagline)) // 2
        draw.text((x, center_y + 8), tagline, font=sub, fill="#9ca3af")
        return page

    # ------------------------------------------------------------------
    # Panels
    # ------------------------------------------------------------------

    def _draw_panel(
        self,
        page: Image.Image,
        box: tuple[int, int, int, int],
        script: PanelScript,
        image_data: Optional[str],
    ) -> None:
        left, top, right, bottom = box
        width = right - left
        image_height = width * 3 // 4

        draw = ImageDraw.Draw(page)
        draw.rectangle(box, fill=PANEL_COLOR, outline="white", width=2)

        image = self._load(image_data)
        if image is not None:
            page.paste(ImageOps.fit(image, (width - 4, image_height - 4)), (left + 2, top + 2))
        else:
            draw.rectangle([left + 2, top + 2, right - 2, top + image_height - 2], fill=PLACEHOLDER_COLOR)

        if not script.has_text:
            return

        caption_top = top + image_height
        draw.rectangle([left + 2, caption_top, right - 2, bottom - 2], fill=CAPTION_COLOR)
        draw.line([left, caption_top, right, caption_top], fill="white", width=2)

        text_box_left, text_box_right = left + 10, right - 10
        y = caption_top + 8
        if script.narration:
            y = draw_wrapped(draw, script.narration, (text_box_left, y, text_box_right, bottom - 6),
                             get_font(14)) + 4
        dialogue_font = get_font(16)
        for line in script.dialogue:
            y = draw_wrapped(draw, f"{line.character}: {line.speech}",
                             (text_box_left, y, text_box_right, bottom - 6), dialogue_font)

    @staticmethod
    def _load(payload: Optional[str]) -> Optional[Image.Image]:
        if not payload:
            return None
        try:
            return decode_image(payload)
        except ValueError:
            logger.warning("Skipping unreadable image in comic")
            return None
