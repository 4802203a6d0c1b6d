"""
QR Code Generator Module - Room Cleaning Tracker

This module turns rooms into scannable QR codes. Each code carries the
room's deep link, <origin>/room/<room id>; scanning it simply opens that page
in a browser, where the usual sign-in and role checks decide whether the
cleaning can be recorded. There is therefore no decode step here.

Features:
- Canonical room deep links
- Fixed-width PNG rendering with configurable margin and colors
- Base64 data URLs for previews
- Printable A4 sheets of room codes with building and room captions
"""

import base64
import io
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Tuple

import qrcode
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas


def room_path(room_id) -> str:
    """Path part of a room deep link."""
    return f"/room/{room_id}"


def room_url(room_id, origin: str = '') -> str:
    """Full deep link for a room."""
    return f"{(origin or '').rstrip('/')}{room_path(room_id)}"


def room_caption(room) -> Tuple[str, str]:
    """Building and room lines printed under a code, blank when unknown."""
    building_name = getattr(room, 'building_name', None) or ''
    room_number = getattr(room, 'room_number', None)
    return building_name, (f"Room {room_number}" if room_number else '')


@dataclass
class QRSheet:
    """Printable PDF of room QR codes."""
    content: bytes
    page_count: int
    room_count: int
    filename: str


class QRGenerator:
    """
    QR code rendering for room deep links and printable sheets.
    """

    def __init__(self, width: int = 200, margin: int = 1,
                 fill_color: str = '#000000', back_color: str = '#FFFFFF',
                 sheet_columns: int = 3, sheet_rows: int = 4):
        """
        Initialize the QR code generator.

        Args:
            width (int): Image width and height in pixels
            margin (int): Quiet zone around the code, in modules
            fill_color (str): Foreground color
            back_color (str): Background color
            sheet_columns (int): Codes per row on a printed sheet
            sheet_rows (int): Rows per printed page
        """
        self.logger = logging.getLogger(__name__)
        self.default_settings = {
            'error_correction': qrcode.constants.ERROR_CORRECT_M,
            'box_size': 10,
            'width': width,
            'margin': margin,
            'fill_color': fill_color,
            'back_color': back_color,
        }
        self.sheet_columns = sheet_columns
        self.sheet_rows = sheet_rows

    @property
    def codes_per_page(self) -> int:
        return self.sheet_columns * self.sheet_rows

    def generate_qr_image(self, data: str, width: int = None, margin: int = None,
                          fill_color: str = None, back_color: str = None) -> Image.Image:
        """
        Render arbitrary text as a square QR image.

        Args:
            data (str): Text to encode
            width (int): Output width in pixels
            margin (int): Quiet zone in modules
            fill_color (str): Foreground color
            back_color (str): Background color

        Returns:
            Image.Image: RGB image of exactly width x width pixels
        """
        settings = self.default_settings
        width = width or settings['width']
        margin = settings['margin'] if margin is None else margin

        qr = qrcode.QRCode(
            version=None,
            error_correction=settings['error_correction'],
            box_size=settings['box_size'],
            border=margin
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(
            fill_color=fill_color or settings['fill_color'],
            back_color=back_color or settings['back_color']
        ).get_image().convert('RGB')

        if img.size != (width, width):
            img = img.resize((width, width), Image.NEAREST)
        return img

    def generate_room_qr_code(self, room_id, origin: str = '', **options) -> Image.Image:
        """
        Render the deep link of a room as a QR image.

        Args:
            room_id: Room id
            origin (str): Scheme and host the link should open, e.g. https://clean.example.com
            **options: width, margin, fill_color, back_color overrides

        Returns:
            Image.Image: QR code image
        """
        return self.generate_qr_image(room_url(room_id, origin), **options)

    @staticmethod
    def to_png_bytes(img: Image.Image) -> bytes:
        buffer = io.BytesIO()
        img.save(buffer, format='PNG')
        return buffer.getvalue()

    def to_data_url(self, img: Image.Image) -> str:
        encoded = base64.b64encode(self.to_png_bytes(img)).decode()
        return f"data:image/png;base64,{encoded}"

    def create_qr_sheet(self, rooms: Iterable, origin: str = '',
                        output_filename: str = None) -> QRSheet:
        """
        Lay room QR codes out on A4 pages for printing.

        Codes fill a grid of sheet_columns x sheet_rows per page, left to
        right and top to bottom; each cell carries the building name and the
        room number under the code. An empty room list yields an empty sheet
        with no pages.

        Args:
            rooms: Rooms with id, room_number and building_name attributes
            origin (str): Origin of the deep links
            output_filename (str): Download name of the PDF

        Returns:
            QRSheet: PDF content and page count
        """
        rooms = list(rooms)
        if not output_filename:
            output_filename = f"room_qr_codes_{datetime.now().strftime('%Y%m%d_%H%M%S')}.pdf"

        if not rooms:
            self.logger.info("QR sheet requested for zero rooms, nothing to print")
            return QRSheet(content=b'', page_count=0, room_count=0, filename=output_filename)

        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle('Room QR codes')
        page_width, page_height = A4

        page_margin = 15 * mm
        caption_height = 14 * mm
        cell_width = (page_width - 2 * page_margin) / self.sheet_columns
        cell_height = (page_height - 2 * page_margin) / self.sheet_rows
        qr_size = min(cell_width, cell_height - caption_height) * 0.9

        for i, room in enumerate(rooms):
            if i > 0 and i % self.codes_per_page == 0:
                pdf.showPage()

            slot = i % self.codes_per_page
            row = slot // self.sheet_columns
            col = slot % self.sheet_columns

            cell_left = page_margin + col * cell_width
            cell_top = page_height - page_margin - row * cell_height
            x = cell_left + (cell_width - qr_size) / 2
            y = cell_top - qr_size

            img = self.generate_room_qr_code(room.id, origin)
            pdf.drawImage(ImageReader(img), x, y, width=qr_size, height=qr_size)

            center = cell_left + cell_width / 2
            pdf.setFont('Helvetica', 10)
            building_line, room_line = room_caption(room)
            pdf.drawCentredString(center, y - 5 * mm, building_line)
            pdf.drawCentredString(center, y - 10 * mm, room_line)

        page_count = pdf.getPageNumber()
        pdf.save()

        self.logger.info(f"QR sheet generated: {len(rooms)} rooms on {page_count} pages")
        return QRSheet(
            content=buffer.getvalue(),
            page_count=page_count,
            room_count=len(rooms),
            filename=output_filename
        )

    def expected_page_count(self, room_count: int) -> int:
        return math.ceil(room_count / self.codes_per_page) if room_count > 0 else 0
