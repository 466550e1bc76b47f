"""
Graphic Commands
================

SBPL graphic encoders:

- GH: hex graphic, 8 pixels per byte, MSB first, dimensions in 8 dot blocks
- GM: embedded monochrome BMP file
- FW: line box

Images are read through a pixel source exposing width, height and
get_bit(x, y) (1 = black). PillowBitmap adapts a Pillow image.
"""

from io import BytesIO
from typing import List

from PIL import Image

from .exceptions import ArgumentError

BITMAP_MAX_BYTES = 99999


class PillowBitmap:
    """Monochrome pixel source backed by a Pillow image."""

    def __init__(self, image: Image.Image):
        self.image = image.convert('1')

    @classmethod
    def from_bytes(cls, data: bytes) -> 'PillowBitmap':
        """Load PNG/JPEG/BMP bytes."""
        try:
            return cls(Image.open(BytesIO(data)))
        except OSError as e:
            raise ArgumentError(f'Cannot decode image: {e}') from e

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def get_bit(self, x: int, y: int) -> int:
        return 1 if self.image.getpixel((x, y)) == 0 else 0


def _as_image(source) -> Image.Image:
    """Render any pixel source into a 1-bit Pillow image."""
    if isinstance(source, PillowBitmap):
        return source.image
    image = Image.new('1', (source.width, source.height), 1)
    for y in range(source.height):
        for x in range(source.width):
            if source.get_bit(x, y):
                image.putpixel((x, y), 0)
    return image


def pack_rows(source, width: int, height: int) -> List[int]:
    """Pack the top-left width x height pixels into bytes, row by row, MSB first."""
    packed = []
    for y in range(height):
        for x_byte in range(0, width, 8):
            byte = 0
            for bit in range(8):
                if source.get_bit(x_byte + bit, y):
                    byte |= 1 << (7 - bit)
            packed.append(byte)
    return packed


def bmp_bytes(source) -> bytes:
    """Monochrome BMP file for a pixel source."""
    buffer = BytesIO()
    _as_image(source).save(buffer, format='BMP')
    return buffer.getvalue()


class Graphic:
    """Graphic encoders bound to one printer session."""

    def __init__(self, printer):
        self.printer = printer

    def add_graphic(self, source, is_strict: bool = False):
        """
        Hex graphic (GH).

        Args:
            source: Pixel source
            is_strict: Reject images whose sides are not multiples of 8
                       instead of cropping them
        """
        if is_strict and (source.width % 8 or source.height % 8):
            raise ArgumentError(
                'Invalid image size. Specify the width or height of multiples of 8. '
                f'size: {source.width}x{source.height}')
        width = source.width - source.width % 8
        height = source.height - source.height % 8
        if not (8 <= width <= 999 * 8 and 8 <= height <= 999 * 8):
            raise ArgumentError(f'Image too small or too large for GH. size: {source.width}x{source.height}')

        data = ''.join(f'{byte:02X}' for byte in pack_rows(source, width, height))
        self.printer.add(f'GH{width // 8:03d}{height // 8:03d}{data}')

    def add_bitmap(self, source):
        """
        Embedded BMP (GM).

        Args:
            source: Pixel source; sent as a monochrome BMP of at most 99999 bytes
        """
        bmp = bmp_bytes(source)
        if not (1 <= len(bmp) <= BITMAP_MAX_BYTES):
            raise ArgumentError(f'Reduce bitmap size. current: {len(bmp)}, max: {BITMAP_MAX_BYTES}')
        self.printer.add_raw(b'\x1bGM' + f'{len(bmp):05d},'.encode('ascii') + bmp)

    def add_box(self, horizontal_line_width: int, vertical_line_width: int, width: int, height: int):
        """
        Line box (FW).

        Args:
            horizontal_line_width: 1-99 dots
            vertical_line_width: 1-99 dots
            width: 1-9999 dots
            height: 1-9999 dots
        """
        for value, high, what in (
            (horizontal_line_width, 99, 'horizontal line width'),
            (vertical_line_width, 99, 'vertical line width'),
            (width, 9999, 'width'),
            (height, 9999, 'height'),
        ):
            if not (1 <= value <= high):
                raise ArgumentError(f'Specify 1-{high} dots for {what}. value: {value}')
        self.printer.add(
            f'FW{horizontal_line_width:02d}{vertical_line_width:02d}V{height:04d}H{width:04d}')
