"""
SBPL Print Service Configuration
"""

import os

# =============================================================================
# Server Configuration
# =============================================================================

PORT = int(os.environ.get('SBPL_PRINT_PORT', 5100))
HOST = os.environ.get('SBPL_PRINT_HOST', '0.0.0.0')
DEBUG = os.environ.get('SBPL_PRINT_DEBUG', 'false').lower() == 'true'

# API Key for authentication
API_KEY = os.environ.get('SBPL_PRINT_API_KEY', 'sbpl-print-2026')

# Log level for the service entry point
LOG_LEVEL = os.environ.get('SBPL_PRINT_LOG_LEVEL', 'INFO').upper()

# =============================================================================
# Printer Defaults
# =============================================================================

# Raw TCP print port
PRINTER_PORT = int(os.environ.get('SBPL_PRINTER_PORT', 9100))

# TCP connect timeout (seconds)
CONNECT_TIMEOUT = float(os.environ.get('SBPL_CONNECT_TIMEOUT', 5))

# Status query I/O timeout (seconds)
STATUS_TIMEOUT = float(os.environ.get('SBPL_STATUS_TIMEOUT', 10))

# Readiness gate when a TCP session is opened
CONNECT_WAIT_TIMEOUT = float(os.environ.get('SBPL_CONNECT_WAIT_TIMEOUT', 3))
CONNECT_WAIT_INTERVAL = float(os.environ.get('SBPL_CONNECT_WAIT_INTERVAL', 0.1))

# Readiness gate after each transmitted page
PRINT_SEND_TIMEOUT = float(os.environ.get('SBPL_PRINT_SEND_TIMEOUT', 60))
PRINT_SEND_INTERVAL = float(os.environ.get('SBPL_PRINT_SEND_INTERVAL', 1))

# Document name used for spooler jobs
DEFAULT_DOC_NAME = 'RAW DOCUMENT'

# =============================================================================
# Discovery
# =============================================================================

SEARCH_PORT = int(os.environ.get('SBPL_SEARCH_PORT', 19541))
SEARCH_WAIT = float(os.environ.get('SBPL_SEARCH_WAIT', 3))

# =============================================================================
# Job History
# =============================================================================

JOB_HISTORY_LIMIT = int(os.environ.get('SBPL_JOB_HISTORY_LIMIT', 500))
