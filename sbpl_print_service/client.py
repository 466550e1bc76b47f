"""
SBPL Print Service Client
=========================

Python SDK for interacting with SBPL Print Service.

Usage:
    from sbpl_print_service.client import PrintClient

    client = PrintClient('http://localhost:5100', api_key='your-key')

    # Find printers on the local segment
    printers = client.discover(wait=2)

    # Print one label
    client.print_document(
        {'pages': [{'items': [{'type': 'code128', 'width': 2, 'height': 80, 'data': 'HELLO'}]}]},
        mac='02:00:00:00:00:01',
    )
"""

import requests
from typing import Dict, Any, Optional, List


class PrintClient:
    """Client for SBPL Print Service."""

    def __init__(self, base_url: str = 'http://localhost:5100', api_key: str = None,
                 timeout: float = 30):
        """
        Initialize client.

        Args:
            base_url: Base URL of the print service
            api_key: API key for authentication
            timeout: Default request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        """Get request headers."""
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        return headers

    def _request(self, method: str, endpoint: str, data: Dict = None,
                 params: Dict = None, timeout: float = None) -> Dict[str, Any]:
        """Make API request."""
        url = f'{self.base_url}{endpoint}'

        try:
            response = requests.request(
                method, url, json=data, params=params,
                headers=self._headers(), timeout=timeout or self.timeout,
            )
            return response.json()

        except requests.exceptions.Timeout:
            return {'success': False, 'error': 'Request timeout'}
        except requests.exceptions.ConnectionError:
            return {'success': False, 'error': f'Cannot connect to {self.base_url}'}
        except ValueError:
            return {'success': False, 'error': 'Invalid JSON response'}

    # =========================================================================
    # Health
    # =========================================================================

    def health(self) -> Dict[str, Any]:
        """Check service health."""
        return self._request('GET', '/health')

    def is_online(self) -> bool:
        """Check if service is online."""
        result = self.health()
        return result.get('status') == 'online'

    # =========================================================================
    # Discovery
    # =========================================================================

    def discover(self, wait: float = 3, port: int = None) -> List[Dict[str, Any]]:
        """Broadcast a search through the service and list responding printers."""
        params = {'wait': wait}
        if port:
            params['port'] = port
        result = self._request('GET', '/api/discover', params=params, timeout=self.timeout + wait)
        return result.get('discovered', [])

    def clear_discovery_cache(self) -> Dict[str, Any]:
        """Forget cached MAC to IP mappings."""
        return self._request('DELETE', '/api/discover/cache')

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self, mac: str, wait: float = 3) -> Dict[str, Any]:
        """Get printer status (state, battery, buffer, labels remaining)."""
        return self._request('GET', f'/api/printers/{mac}/status', params={'wait': wait})

    def is_printer_ready(self, mac: str) -> bool:
        """
        Quick check if a printer can take a job.

        Returns:
            True if ready, False if busy, faulted, offline or unreachable
        """
        result = self.get_status(mac)
        return bool(result.get('success') and result['status'].get('ready'))

    # =========================================================================
    # Printing
    # =========================================================================

    def print_document(self, document: Dict[str, Any], mac: str = None, host: str = None,
                       spooler: str = None, port: int = None, document_name: str = None,
                       timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Print a label document.

        Args:
            document: Label document ({'settings': {...}, 'pages': [...]})
            mac: Target printer MAC address (resolved by discovery)
            host: Target printer IP address
            spooler: Target Windows printer name
            port: Raw print port for network printers
            document_name: Spooler document name
            timeout: Readiness deadline after each page, seconds
        """
        data = {'document': document}
        for key, value in (('mac', mac), ('host', host), ('spooler', spooler), ('port', port),
                           ('document_name', document_name), ('timeout', timeout)):
            if value is not None:
                data[key] = value
        return self._request('POST', '/api/print', data, timeout=max(self.timeout, 60))

    # =========================================================================
    # Jobs
    # =========================================================================

    def list_jobs(self, target: str = None, limit: int = 50) -> List[Dict[str, Any]]:
        """List recent print jobs."""
        params = {'limit': limit}
        if target:
            params['target'] = target
        result = self._request('GET', '/api/jobs', params=params)
        return result.get('jobs', [])
