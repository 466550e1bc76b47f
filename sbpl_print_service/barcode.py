"""
Barcode Commands
================

SBPL barcode encoders. Each method validates its parameters, then appends
exactly one operation to the owning printer's stream.
"""

import re
from typing import Tuple

from .exceptions import ArgumentError

CODABAR_START_STOP = 'ABCD'
CODABAR_DATA = '0123456789-$:/.+'
CODABAR_SYMBOLS = CODABAR_DATA + CODABAR_START_STOP

# CODE128 control sequences understood by the firmware
CODE128_START_B = '>H'
CODE128_CODE_C = '>C'

# Shortest trailing digit run worth switching to code set C
CODE128_NUMERIC_MIN = 6

_TRAILING_DIGITS = re.compile(r'[0-9]*\Z')


def _check_range(value: int, low: int, high: int, what: str):
    if not (low <= value <= high):
        raise ArgumentError(f'Specify {low}-{high} dot for {what}. value: {value}')


def code128_segments(data: str) -> Tuple[str, str]:
    """
    Split CODE128 data into a code set B front and a code set C back.

    The back is the trailing digit run when it is at least six digits
    long, trimmed to an even length (an odd leading digit stays in front).

    Returns:
        (front, back); back is '' when no numeric tail applies
    """
    digits = _TRAILING_DIGITS.search(data).group()
    if len(digits) < CODE128_NUMERIC_MIN:
        return data, ''
    if len(digits) % 2:
        digits = digits[1:]
    return data[:len(data) - len(digits)], digits


def code128_width(narrow_bar_width: int, data: str) -> int:
    """
    Total module width in dots of an auto-mode CODE128 symbol.

    Start, front and check characters take 11 modules each, plus one more
    11 module character and the 13 module stop pattern. A numeric tail adds
    11 for the shift to code set C and 11 per digit pair. Quiet zones are
    not included.
    """
    w = narrow_bar_width
    front, back = code128_segments(data)
    width = 11 * w * (2 + len(front)) + 11 * w + 13 * w
    if back:
        width += 11 * w + 11 * w * len(back) // 2
    return width


class Barcode:
    """Barcode encoders bound to one printer session."""

    def __init__(self, printer):
        self.printer = printer

    def add_code128(self, narrow_bar_width: int, barcode_height: int, print_data: str):
        """
        CODE128 with the data passed through as-is.

        Args:
            narrow_bar_width: 1-12 dots
            barcode_height: 1-600 dots
            print_data: Barcode data, including any control sequences
        """
        _check_range(narrow_bar_width, 1, 12, 'Narrow Bar Width')
        _check_range(barcode_height, 1, 600, 'Barcode Height')
        self.printer.add(f'BG{narrow_bar_width:02d}{barcode_height:03d}{print_data}')

    def add_code128_auto(self, narrow_bar_width: int, barcode_height: int, print_data: str):
        """CODE128 starting in code set B, switching to code set C for a long numeric tail."""
        _check_range(narrow_bar_width, 1, 12, 'Narrow Bar Width')
        _check_range(barcode_height, 1, 600, 'Barcode Height')
        if not print_data:
            raise ArgumentError('Barcode data is empty.')
        front, back = code128_segments(print_data)
        encoded = CODE128_START_B + front
        if back:
            encoded += CODE128_CODE_C + back
        self.printer.add(f'BG{narrow_bar_width:02d}{barcode_height:03d}{encoded}')

    def add_code128_centered(self, narrow_bar_width: int, barcode_height: int,
                             print_data: str, area_width: int):
        """
        Auto-mode CODE128 centred horizontally in an area.

        Args:
            area_width: Width of the printable area in dots
        """
        _check_range(narrow_bar_width, 1, 12, 'Narrow Bar Width')
        _check_range(barcode_height, 1, 600, 'Barcode Height')
        if not print_data:
            raise ArgumentError('Barcode data is empty.')
        width = code128_width(narrow_bar_width, print_data)
        x = (area_width - width) // 2
        if x < 1:
            raise ArgumentError(
                f'Barcode does not fit. barcode width: {width}, area width: {area_width}')
        self.printer.move_to_x(x)
        self.add_code128_auto(narrow_bar_width, barcode_height, print_data)

    def add_jan13(self, thin_bar_width: int, barcode_top: int, print_data: str):
        """
        JAN-13 / EAN-13.

        Args:
            thin_bar_width: 1-12 dots
            barcode_top: Bar height, 1-600 dots
            print_data: 11-13 digits (the printer adds a missing check digit)
        """
        _check_range(thin_bar_width, 1, 12, 'Narrow Bar Width')
        _check_range(barcode_top, 1, 600, 'Barcode Height')
        if not (11 <= len(print_data) <= 13):
            raise ArgumentError(
                f'Correct barcode data length. valid range: 11-13, length: {len(print_data)}')
        if not print_data.isdigit() or not print_data.isascii():
            raise ArgumentError(f'Correct character type of barcode data. data: {print_data!r}')
        self.printer.add(f'BD3{thin_bar_width:02d}{barcode_top:03d}{print_data}')

    def add_codabar(self, thin_bar_width: int, bar_top_length: int, print_data: str,
                    start_char: str = 'A', stop_char: str = None):
        """
        Codabar with a 1:3 narrow to wide ratio.

        Args:
            thin_bar_width: 1-12 dots
            bar_top_length: Bar height, 1-600 dots
            print_data: Characters from 0-9 - $ : / . +
            start_char: One of A B C D
            stop_char: One of A B C D (defaults to start_char)
        """
        if stop_char is None:
            stop_char = start_char
        _check_range(thin_bar_width, 1, 12, 'Narrow Bar Width')
        _check_range(bar_top_length, 1, 600, 'Barcode Height')
        bad = [c for c in print_data if c not in CODABAR_DATA]
        if bad:
            raise ArgumentError(f'Check character of barcode data. invalid: {"".join(bad)!r}')
        if len(start_char) != 1 or start_char not in CODABAR_START_STOP:
            raise ArgumentError(f'Check start character. value: {start_char!r}')
        if len(stop_char) != 1 or stop_char not in CODABAR_START_STOP:
            raise ArgumentError(f'Check stop character. value: {stop_char!r}')

        barcode_type = 0  # Codabar
        self.printer.add(
            f'B{barcode_type:d}{thin_bar_width:02d}{bar_top_length:03d}{start_char}{print_data}{stop_char}')
