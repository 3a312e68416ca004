"""RPC module for interacting with an EVM chain node"""
import logging
import requests
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

class RPCError(Exception):
    """Base exception for RPC errors"""
    def __init__(self, message: str, code: Optional[int] = None, method: Optional[str] = None):
        self.code = code
        self.method = method
        super().__init__(f"RPC Error [{code}] in {method}: {message}" if code else message)

class NodeConnectionError(RPCError):
    """Raised when connection to node fails"""
    pass

class NodeAuthError(RPCError):
    """Raised when authentication failed"""
    pass

class ContractCallError(RPCError):
    """Node-reported JSON-RPC errors

    Common error codes:
    3      - Execution reverted
    -32000 - Generic server error (missing trie node, header not found)
    -32601 - Method not found
    -32602 - Invalid params
    """
    ERROR_MESSAGES = {
        3: "Execution reverted",
        -32000: "Server error",
        -32601: "Method not found",
        -32602: "Invalid params",
    }

    def __init__(self, message: str, code: int, method: str):
        standard_msg = self.ERROR_MESSAGES.get(code, "Unknown error")
        full_msg = f"{standard_msg} - {message}" if message != standard_msg else message
        super().__init__(full_msg, code, method)

class RPCMethod:
    """Descriptor class for RPC methods"""
    def __init__(self, method_name: str):
        self.method_name = method_name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self

        def caller(*args) -> Any:
            return obj._call_method(self.method_name, *args)

        return caller

class EthereumRPC:
    """JSON-RPC client for an EVM node"""

    def __init__(self, url: str, timeout: float = 10.0):
        """Initialize RPC client

        Args:
            url: Node JSON-RPC endpoint
            timeout: Seconds to wait for each request
        """
        self.url = url
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers['content-type'] = 'application/json'

        # Request ID counter
        self._request_id = 0

    def _get_request_id(self) -> int:
        """Get unique request ID"""
        self._request_id += 1
        return self._request_id

    def _call_method(self, method: str, *args) -> Any:
        """Make RPC call to the node

        Args:
            method: RPC method name
            *args: Method arguments

        Returns:
            Response from node

        Raises:
            NodeConnectionError: Connection to node failed
            NodeAuthError: Authentication failed
            ContractCallError: Node returned a JSON-RPC error
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": list(args),
            "id": self._get_request_id()
        }

        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)

            if response.status_code == 401:
                raise NodeAuthError("Authentication failed - check node credentials")

            # Try to parse response even if status code is error
            result: Dict[str, Any] = response.json()

            if result.get('error') is not None:
                error = result['error']
                raise ContractCallError(
                    error.get('message', 'Unknown error'),
                    error.get('code', -32000),
                    method
                )

            response.raise_for_status()

            return result['result']

        except requests.exceptions.Timeout as e:
            raise NodeConnectionError(
                f"Request timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise NodeConnectionError(
                f"Failed to connect to node at {self.url}"
            ) from e
        except requests.exceptions.HTTPError as e:
            raise NodeConnectionError(
                f"HTTP error occurred: {str(e)}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise NodeConnectionError(
                f"Request failed: {str(e)}"
            ) from e
        except (KeyError, ValueError) as e:
            raise NodeConnectionError(
                f"Invalid response format: {str(e)}"
            ) from e

    # Chain state
    eth_blockNumber = RPCMethod('eth_blockNumber')
    eth_chainId = RPCMethod('eth_chainId')

    # Contract reads
    eth_call = RPCMethod('eth_call')

_client: Optional[EthereumRPC] = None

def get_client() -> EthereumRPC:
    """Return the process-wide client built from settings.conf"""
    global _client
    if _client is None:
        from config import get_settings

        settings = get_settings()
        _client = EthereumRPC(settings['rpc_url'], timeout=settings['rpc_timeout'])
        logger.info(f"Using chain node at {settings['rpc_url']}")
    return _client

# Export all methods and error types
__all__ = [
    'RPCError',
    'NodeConnectionError',
    'NodeAuthError',
    'ContractCallError',
    'RPCMethod',
    'EthereumRPC',
    'get_client'
]
