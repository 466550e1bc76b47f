"""
Label Documents
===============

Applies a JSON label document to a printer session.

    {
        "settings": {"sensor": 0, "gap": 16, "density": [3, "A"],
                     "speed": 4, "paper_size": [639, 831]},
        "pages": [
            {"copies": 1, "items": [
                {"type": "move", "x": 80, "y": 80},
                {"type": "jan13", "width": 3, "height": 70, "data": "1234567890128"},
                {"type": "graphic", "image_base64": "..."}
            ]}
        ]
    }

Every page but the last is streamed with add_stream(); the last one closes
the job with send().
"""

import base64
import binascii
from datetime import datetime
from typing import Any, Dict

from .exceptions import ArgumentError
from .graphic import PillowBitmap
from .printer import Printer


def _image(item: Dict[str, Any]) -> PillowBitmap:
    try:
        data = base64.b64decode(item['image_base64'], validate=True)
    except KeyError:
        raise ArgumentError(f"{item['type']} item requires image_base64") from None
    except binascii.Error as e:
        raise ArgumentError(f'Invalid image_base64: {e}') from e
    return PillowBitmap.from_bytes(data)


def _move(printer: Printer, item):
    if 'x' in item:
        printer.move_to_x(item['x'])
    if 'y' in item:
        printer.move_to_y(item['y'])


def _code128(printer: Printer, item):
    if item.get('center_in'):
        printer.barcode.add_code128_centered(item['width'], item['height'], item['data'], item['center_in'])
    else:
        printer.barcode.add_code128(item['width'], item['height'], item['data'])


ITEMS = {
    'move': _move,
    'start_position': lambda p, i: p.set_start_position(i['x'], i['y']),
    'offset': lambda p, i: p.set_start_position_ex(i['x'], i['y']),
    'code128': _code128,
    'code128_auto': lambda p, i: p.barcode.add_code128_auto(i['width'], i['height'], i['data']),
    'jan13': lambda p, i: p.barcode.add_jan13(i['width'], i['height'], i['data']),
    'codabar': lambda p, i: p.barcode.add_codabar(
        i['width'], i['height'], i['data'], i.get('start', 'A'), i.get('stop')),
    'box': lambda p, i: p.graphic.add_box(
        i['line_width'], i.get('vertical_line_width', i['line_width']), i['width'], i['height']),
    'graphic': lambda p, i: p.graphic.add_graphic(_image(i), i.get('strict', False)),
    'bitmap': lambda p, i: p.graphic.add_bitmap(_image(i)),
    'calendar': lambda p, i: p.set_calendar(
        datetime.fromisoformat(i['datetime']) if i.get('datetime') else datetime.now()),
    'raw': lambda p, i: p.add(i['command']),
}

SETTINGS = {
    'sensor': lambda p, v: p.set_sensor_type(v),
    'gap': lambda p, v: p.set_gap_size_between_labels(v),
    'density': lambda p, v: p.set_density(*v) if isinstance(v, (list, tuple)) else p.set_density(v),
    'speed': lambda p, v: p.set_speed(v),
    'paper_size': lambda p, v: p.set_paper_size(*v),
}


def apply_item(printer: Printer, item: Dict[str, Any]):
    """Apply one drawing item."""
    kind = item.get('type')
    handler = ITEMS.get(kind)
    if handler is None:
        raise ArgumentError(f'Unknown item type: {kind!r}. Valid: {sorted(ITEMS)}')
    try:
        handler(printer, item)
    except ArgumentError:
        raise
    except KeyError as e:
        raise ArgumentError(f'{kind} item requires {e.args[0]!r}') from None
    except (TypeError, ValueError) as e:
        raise ArgumentError(f'Invalid {kind} item: {e}. item: {item!r}') from e


def apply_settings(printer: Printer, settings: Dict[str, Any]):
    """Insert global settings pages."""
    for name, value in settings.items():
        handler = SETTINGS.get(name)
        if handler is None:
            raise ArgumentError(f'Unknown setting: {name!r}. Valid: {sorted(SETTINGS)}')
        try:
            handler(printer, value)
        except ArgumentError:
            raise
        except (TypeError, ValueError) as e:
            raise ArgumentError(f'Invalid {name} setting: {e}. value: {value!r}') from e


def validate_document(document: Dict[str, Any]):
    """Shape checks that must pass before anything is sent."""
    if not isinstance(document, dict):
        raise ArgumentError('Label document must be an object')
    settings = document.get('settings')
    if settings is not None and not isinstance(settings, dict):
        raise ArgumentError(f'Label settings must be an object. value: {settings!r}')
    pages = document.get('pages')
    if not isinstance(pages, list) or not pages:
        raise ArgumentError('Label document requires a non-empty pages list')
    for index, page in enumerate(pages):
        if not isinstance(page, dict) or not isinstance(page.get('items', []), list):
            raise ArgumentError(f'Page {index} must be an object with an items list')
        for item in page.get('items', []):
            if not isinstance(item, dict):
                raise ArgumentError(f'Page {index} items must be objects. item: {item!r}')
        copies = page.get('copies', 1)
        if isinstance(copies, bool) or not isinstance(copies, int):
            raise ArgumentError(f'Page {index} copies must be an integer. value: {copies!r}')


def print_document(printer: Printer, document: Dict[str, Any], timeout: float = None) -> int:
    """
    Print a label document.

    Returns:
        Total bytes sent
    """
    validate_document(document)
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
        raise ArgumentError(f'Timeout must be a number of seconds. value: {timeout!r}')
    apply_settings(printer, document.get('settings') or {})

    pages = document['pages']
    sent = 0
    for index, page in enumerate(pages):
        for item in page.get('items', []):
            apply_item(printer, item)
        printer.set_page_number(page.get('copies', 1))
        if index < len(pages) - 1:
            sent += printer.add_stream(timeout)
        else:
            sent += printer.send(timeout=timeout)
    return sent
