"""
SBPL Print Service - Main Application
=====================================

HTTP front end for SBPL label printers: discovery, status and printing.

Run: python -m sbpl_print_service
"""

import sys
import logging
import platform
import socket
from datetime import datetime
from flask import Flask, request, jsonify
from flask_cors import CORS

from . import __version__
from .config import (
    PORT, HOST, DEBUG, API_KEY, LOG_LEVEL, PRINTER_PORT, SEARCH_PORT, SEARCH_WAIT,
    JOB_HISTORY_LIMIT, DEFAULT_DOC_NAME,
)
from .exceptions import (
    SBPLError, ArgumentError, PrinterNotFoundError, DeviceError, BusyTimeoutError,
)
from .labels import print_document, validate_document
from .models import PrintJob
from .printer import Printer
from .search import default_search
from .status import query
from .transports import TcpTransport

logger = logging.getLogger(__name__)

# =============================================================================
# Application Setup
# =============================================================================

app = Flask(__name__)
CORS(app)

# In-memory job history
_jobs: list = []

# Discovery service shared by all requests
searcher = default_search()


def _check_api_key():
    """Validate API key from request."""
    data = request.get_json(silent=True) or {}
    auth_header = request.headers.get('Authorization', '')

    # Check body
    if data.get('api_key') == API_KEY:
        return True

    # Check header (Bearer token)
    if auth_header.startswith('Bearer ') and auth_header[7:] == API_KEY:
        return True

    return False


def _error_response(e: SBPLError):
    """Map a driver error to a JSON response."""
    body = {'success': False, 'error': str(e), 'error_type': type(e).__name__}

    if isinstance(e, ArgumentError):
        return jsonify(body), 400
    if isinstance(e, PrinterNotFoundError):
        return jsonify(body), 404
    if isinstance(e, BusyTimeoutError):
        body['printer_status'] = str(e.status) if e.status else None
        return jsonify(body), 503
    if isinstance(e, DeviceError):
        body['printer_status'] = e.health.error.value if e.health else None
        return jsonify(body), 503
    return jsonify(body), 502


def _record_job(job: PrintJob):
    _jobs.append(job)
    del _jobs[:-JOB_HISTORY_LIMIT]


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.route('/api', methods=['GET'])
def api_info():
    """API info (JSON)."""
    return jsonify({
        'service': 'SBPL Print Service',
        'version': __version__,
        'status': 'running',
        'endpoints': {
            'health': '/health',
            'discover': '/api/discover',
            'status': '/api/printers/{mac}/status',
            'print': '/api/print',
            'jobs': '/api/jobs',
        }
    })


@app.route('/health', methods=['GET'])
def health():
    """Health check with system info."""
    return jsonify({
        'status': 'online',
        'version': __version__,
        'hostname': socket.gethostname(),
        'platform': platform.system(),
        'python': sys.version.split()[0],
        'jobs_recorded': len(_jobs),
        'timestamp': datetime.now().isoformat(),
    })


# =============================================================================
# Discovery
# =============================================================================

@app.route('/api/discover', methods=['GET'])
def discover_printers():
    """Broadcast a search and list every printer that answered.

    Query params:
        wait - seconds to collect responses (default 3)
        port - discovery port (default 19541)
    """
    try:
        wait = request.args.get('wait', SEARCH_WAIT, type=float)
        port = request.args.get('port', SEARCH_PORT, type=int)
        found = searcher.search(wait, port)
    except SBPLError as e:
        return _error_response(e)

    return jsonify({
        'success': True,
        'discovered': [p.to_dict() for p in found],
        'count': len(found)
    })


@app.route('/api/discover/cache', methods=['DELETE'])
def clear_discovery_cache():
    """Forget cached MAC to IP mappings."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    searcher.clear_cache()
    return jsonify({'success': True, 'message': 'Discovery cache cleared'})


# =============================================================================
# Printer Status
# =============================================================================

@app.route('/api/printers/<mac>/status', methods=['GET'])
def printer_status(mac):
    """Resolve a printer by MAC address and query its status."""
    try:
        wait = request.args.get('wait', SEARCH_WAIT, type=float)
        address = searcher.find(mac, wait)
        transport = TcpTransport(str(address), request.args.get('port', PRINTER_PORT, type=int))
        try:
            status = query(transport)
        finally:
            transport.close()
    except SBPLError as e:
        return _error_response(e)

    return jsonify({
        'success': True,
        'mac': mac,
        'host': str(address),
        'status': status.to_dict(),
        'message': str(status),
    })


# =============================================================================
# Printing
# =============================================================================

def _open_printer(data: dict) -> Printer:
    """Open a session for the target named in a print request."""
    if data.get('mac'):
        return Printer.find(data['mac'], port=data.get('port', PRINTER_PORT), searcher=searcher)
    if data.get('host'):
        return Printer.connect(data['host'], data.get('port', PRINTER_PORT))
    if data.get('spooler'):
        return Printer.open_spooler(data['spooler'], data.get('document_name', DEFAULT_DOC_NAME))
    raise ArgumentError('Print target required: mac, host or spooler')


@app.route('/api/print', methods=['POST'])
def print_labels():
    """Submit a label document."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'Request body required'}), 400

    document = data.get('document')
    try:
        validate_document(document)
    except ArgumentError as e:
        return _error_response(e)

    job = PrintJob(
        target=data.get('mac') or data.get('host') or data.get('spooler') or '',
        connection_type='driver' if data.get('spooler') else 'ip',
        document_name=data.get('document_name', DEFAULT_DOC_NAME),
        pages=len(document['pages']),
        source_ip=request.remote_addr,
    )
    job.start()

    try:
        with _open_printer(data) as printer:
            sent = print_document(printer, document, data.get('timeout'))
    except SBPLError as e:
        printer_status = str(e.status) if isinstance(e, BusyTimeoutError) and e.status else None
        job.fail(str(e), printer_status)
        _record_job(job)
        logger.warning('Job %s failed: %s', job.id, e)
        response, code = _error_response(e)
        body = response.get_json()
        body['job'] = job.to_dict()
        return jsonify(body), code

    job.complete(sent)
    _record_job(job)
    logger.info('Job %s sent %d bytes to %s', job.id, sent, job.target)

    return jsonify({
        'success': True,
        'bytes_sent': sent,
        'job': job.to_dict(),
    })


# =============================================================================
# Job History
# =============================================================================

@app.route('/api/jobs', methods=['GET'])
def list_jobs():
    """List recent jobs."""
    limit = request.args.get('limit', 50, type=int)
    target = request.args.get('target')

    jobs = _jobs
    if target:
        jobs = [j for j in jobs if j.target == target]

    # Most recent first
    jobs = sorted(jobs, key=lambda j: j.created_at, reverse=True)[:limit]

    return jsonify({
        'success': True,
        'jobs': [j.to_dict() for j in jobs],
        'count': len(jobs)
    })


# =============================================================================
# Main
# =============================================================================

def main():
    """Run the service."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    print("=" * 60)
    print("  SBPL Print Service")
    print("=" * 60)
    print(f"  Version: {__version__}")
    print(f"  Port: {PORT}")
    print("=" * 60)
    print("  API Endpoints:")
    print("    GET  /health                          - Health check")
    print("    GET  /api/discover                    - Search network printers")
    print("    DEL  /api/discover/cache              - Clear discovery cache")
    print("    GET  /api/printers/{mac}/status       - Printer status")
    print("    POST /api/print                       - Print label document")
    print("    GET  /api/jobs                        - Job history")
    print("=" * 60)

    app.run(host=HOST, port=PORT, debug=DEBUG)


if __name__ == '__main__':
    main()
