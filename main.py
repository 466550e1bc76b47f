#!/usr/bin/env python
"""
SBPL Print Service - Standalone Entry Point

Run directly:
    python main.py

Or with environment variables:
    SBPL_PRINT_PORT=5200 python main.py
"""

import os
import sys

# Ensure package is importable when running directly
if __name__ == '__main__':
    # Add this directory to path for standalone execution
    root_dir = os.path.dirname(os.path.abspath(__file__))
    if root_dir not in sys.path:
        sys.path.insert(0, root_dir)

from sbpl_print_service.app import main


if __name__ == '__main__':
    main()
