"""Personal data export: page layout and PDF rendering.

The export is built in two steps. `build_export_layout` walks the
student's timetable, posts and answered surveys and places every line
on a page using millimetre coordinates measured from the top edge of an
A4 sheet. `render_pdf` then draws that layout with ReportLab. Keeping
the layout as plain data makes pagination easy to inspect in tests.

Text is drawn with the built-in Helvetica face, which has no glyphs for
Vietnamese diacritics, so every string is folded to its unaccented form
first (`Lịch học` -> `Lich hoc`).
"""

from __future__ import annotations

import io
import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .dates import format_date

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

LEFT = 20
PAGE_TOP = 20
LINE_BREAK_Y = 270
ITEM_BREAK_Y = 250
SECTION_BREAK_Y = 200
RULE_RIGHT = 180
WRAP_WIDTH = 160
BODY_PREVIEW_CHARS = 100

TITLE = "BAO CAO HE THONG QUAN LY TRUONG HOC"
TIMETABLE_HEADING = "LICH HOC"
POSTS_HEADING = "BAI DANG"
SURVEYS_HEADING = "KHAO SAT DA THAM GIA"
TIMETABLE_COLUMNS = (("Ngay", 20), ("Gio", 60), ("Mon hoc", 90), ("Phong", 140))


@dataclass
class TextOp:
    x: float
    y: float
    text: str
    font: str = FONT
    size: int = 10


@dataclass
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float


Op = Union[TextOp, LineOp]


def ascii_fold(text: str) -> str:
    """Strip diacritics so the text can be drawn with a base-14 font."""
    text = text.replace("đ", "d").replace("Đ", "D")
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(
        c if ord(c) < 256 else "?"
        for c in decomposed
        if not unicodedata.combining(c)
    )


def truncate_body(body: str, limit: int = BODY_PREVIEW_CHARS) -> str:
    return body[:limit] + "..." if len(body) > limit else body


def wrap_text(text: str, font: str = FONT, size: int = 10, width_mm: float = WRAP_WIDTH) -> List[str]:
    """Split `text` into lines no wider than `width_mm` in the given font."""
    limit = width_mm * mm
    lines = []
    for paragraph in text.split("\n"):
        for line in simpleSplit(paragraph, font, size, limit) or [""]:
            lines.extend(_split_wide(line, font, size, limit))
    return lines


def _split_wide(line: str, font: str, size: int, limit: float) -> List[str]:
    """Break a line with an unbreakable word into chunks that fit `limit`."""
    if stringWidth(line, font, size) <= limit:
        return [line]
    chunks, current = [], ""
    for char in line:
        if current and stringWidth(current + char, font, size) > limit:
            chunks.append(current)
            current = char
        else:
            current += char
    if current:
        chunks.append(current)
    return chunks


@dataclass
class PdfLayout:
    """Pages of drawing operations plus the running vertical cursor."""
    pages: List[List[Op]] = field(default_factory=lambda: [[]])
    y: float = PAGE_TOP
    font: str = FONT
    size: int = 10

    def add_page(self) -> None:
        self.pages.append([])
        self.y = PAGE_TOP

    def break_if_below(self, limit: float) -> None:
        if self.y > limit:
            self.add_page()

    def set_font(self, font: str, size: Optional[int] = None) -> None:
        self.font = font
        if size is not None:
            self.size = size

    def text(self, text: str, x: float = LEFT) -> None:
        self.pages[-1].append(TextOp(x, self.y, ascii_fold(text), self.font, self.size))

    def rule(self, x1: float = LEFT, x2: float = RULE_RIGHT) -> None:
        self.pages[-1].append(LineOp(x1, self.y, x2, self.y))

    def wrapped(self, text: str) -> None:
        """Write `text` wrapped to the content width, one line per 5 mm."""
        for line in wrap_text(ascii_fold(text), self.font, self.size):
            self.break_if_below(LINE_BREAK_Y)
            self.text(line)
            self.y += 5

    def texts(self) -> List[str]:
        """Every drawn string in page order."""
        return [op.text for page in self.pages for op in page if isinstance(op, TextOp)]


def build_export_layout(
    display_name: str,
    generated_at: datetime,
    timetable: Sequence,
    posts: Sequence,
    surveys: Iterable[Tuple[str, Optional[str]]],
) -> PdfLayout:
    """Lay out the export document.

    `timetable` and `posts` are model rows (anything with the same
    attributes works); `surveys` yields `(question, answer)` pairs for the
    surveys the student answered. Empty collections produce no section
    at all, so a student with no data gets only the header block.
    """
    surveys = list(surveys)
    layout = PdfLayout()

    layout.set_font(FONT_BOLD, 16)
    layout.text(TITLE)
    layout.y += 10

    layout.set_font(FONT, 12)
    layout.text(f"Hoc sinh: {display_name}")
    layout.y += 5
    layout.text(f"Ngay xuat: {generated_at:%d/%m/%Y %H:%M}")
    layout.y += 15

    if timetable:
        layout.set_font(FONT_BOLD, 14)
        layout.text(TIMETABLE_HEADING)
        layout.y += 10

        layout.set_font(FONT, 10)
        for label, x in TIMETABLE_COLUMNS:
            layout.text(label, x)
        layout.y += 5
        layout.rule()
        layout.y += 5

        for entry in timetable:
            layout.break_if_below(LINE_BREAK_Y)
            row = (
                format_date(entry.lesson_date),
                entry.lesson_time.strftime("%H:%M"),
                entry.subject,
                entry.room,
            )
            for value, (_, x) in zip(row, TIMETABLE_COLUMNS):
                layout.text(value, x)
            layout.y += 7
        layout.y += 10

    if posts:
        layout.break_if_below(SECTION_BREAK_Y)
        layout.set_font(FONT_BOLD, 14)
        layout.text(POSTS_HEADING)
        layout.y += 10

        layout.set_font(FONT, 10)
        for post in posts:
            layout.break_if_below(ITEM_BREAK_Y)
            layout.set_font(FONT_BOLD)
            layout.text(f"{format_date(post.publish_date)}: {post.title}")
            layout.y += 7
            layout.set_font(FONT)
            layout.wrapped(truncate_body(post.body))
            layout.y += 10

    if surveys:
        layout.break_if_below(SECTION_BREAK_Y)
        layout.set_font(FONT_BOLD, 14)
        layout.text(SURVEYS_HEADING)
        layout.y += 10

        layout.set_font(FONT, 10)
        for question, answer in surveys:
            layout.break_if_below(ITEM_BREAK_Y)
            layout.set_font(FONT_BOLD)
            layout.wrapped(f"Cau hoi: {question}")
            layout.set_font(FONT)
            layout.wrapped(f"Tra loi: {answer or 'Khong co'}")
            layout.y += 10

    return layout


def render_pdf(layout: PdfLayout, title: str = TITLE) -> bytes:
    """Draw `layout` onto A4 pages and return the PDF bytes."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(title)
    page_height = A4[1]
    for page in layout.pages:
        for op in page:
            if isinstance(op, TextOp):
                pdf.setFont(op.font, op.size)
                pdf.drawString(op.x * mm, page_height - op.y * mm, op.text)
            else:
                pdf.line(op.x1 * mm, page_height - op.y1 * mm, op.x2 * mm, page_height - op.y2 * mm)
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def export_filename(full_name: Optional[str], day: date) -> str:
    return f"hoc_tap_{full_name or 'hoc_sinh'}_{day:%d%m%Y}.pdf"
