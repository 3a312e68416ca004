"""Contract view reader.

Implements the projection's ContractSource over eth_call. Every call is
pinned to the block of the event being applied.
"""
import logging
from typing import List, Optional

from Crypto.Hash import keccak

from projection.exceptions import SourceUnavailableError
from projection.models import ZERO_ADDRESS, normalize_address
from projection.source import ContractSource, ControlLeverSpec, GlobalConfig
from . import EthereumRPC, NodeConnectionError

logger = logging.getLogger(__name__)

WORD = 64  # hex chars per 32-byte ABI word

def selector(signature: str) -> str:
    """First four bytes of the keccak-256 hash of a function signature"""
    digest = keccak.new(digest_bits=256, data=signature.encode()).hexdigest()
    return '0x' + digest[:8]

def encode_uint(value: int) -> str:
    if value < 0:
        raise ValueError(f"uint256 cannot be negative: {value}")
    return format(value, '064x')

def encode_address(address: str) -> str:
    return normalize_address(address)[2:].rjust(WORD, '0')

def _words(data: str) -> List[str]:
    data = data[2:] if data.startswith('0x') else data
    if len(data) % WORD:
        raise ValueError(f"return data is not word aligned: {len(data)} hex chars")
    return [data[i:i + WORD] for i in range(0, len(data), WORD)]

def decode_uint(data: str) -> int:
    return int(_words(data)[0], 16)

def decode_address(data: str) -> str:
    return '0x' + _words(data)[0][-40:]

def decode_int_array(data: str) -> List[int]:
    """Decode a single dynamic int256[] return value"""
    words = _words(data)
    start = int(words[0], 16) // 32
    length = int(words[start], 16)
    values = []
    for word in words[start + 1:start + 1 + length]:
        value = int(word, 16)
        if value >= 2 ** 255:
            value -= 2 ** 256
        values.append(value)
    if len(values) != length:
        raise ValueError(f"int256[] declares {length} items, found {len(values)}")
    return values

class ContractReader(ContractSource):
    """Contract view calls for the projection"""

    ARTIST_SECOND_SALE_PERCENTAGE = selector('artistSecondSalePercentage()')
    PLATFORM_FIRST_SALE_PERCENTAGE = selector('defaultPlatformFirstSalePercentage()')
    PLATFORM_SECOND_SALE_PERCENTAGE = selector('defaultPlatformSecondSalePercentage()')
    PLATFORM_ADDRESS = selector('platformAddress()')
    PERMISSIONED_CONTROLLERS = selector('permissionedControllers(address,uint256)')
    GET_CONTROL_TOKEN = selector('getControlToken(uint256)')

    def __init__(self, client: EthereumRPC, contract_address: str):
        self.client = client
        self.contract_address = normalize_address(contract_address)

    @classmethod
    def from_settings(cls, client: Optional[EthereumRPC] = None) -> 'ContractReader':
        """Build a reader for the contract named in settings.conf"""
        from config import get_settings
        from . import get_client

        settings = get_settings()
        return cls(client or get_client(), settings['contract_address'])

    def _call(self, name: str, data: str, block_number: int) -> str:
        """eth_call against the contract at a block

        Raises:
            SourceUnavailableError: The node could not be reached
            ContractCallError: The node answered with an error
        """
        call = {'to': self.contract_address, 'data': data}
        try:
            return self.client.eth_call(call, hex(block_number))
        except NodeConnectionError as e:
            logger.warning(f"{name} at block {block_number} failed: {e}")
            raise SourceUnavailableError(str(e), query=name) from e

    def query_current_permission(self, token_id: int, owner: str, block_number: int) -> Optional[str]:
        data = self.PERMISSIONED_CONTROLLERS + encode_address(owner) + encode_uint(token_id)
        result = decode_address(self._call('permissionedControllers', data, block_number))
        return None if result == ZERO_ADDRESS else result

    def query_global_config(self, block_number: int) -> GlobalConfig:
        platform_address = decode_address(
            self._call('platformAddress', self.PLATFORM_ADDRESS, block_number)
        )
        return GlobalConfig(
            artist_second_sale_percentage=decode_uint(
                self._call('artistSecondSalePercentage', self.ARTIST_SECOND_SALE_PERCENTAGE, block_number)
            ),
            platform_first_sale_percentage=decode_uint(
                self._call('defaultPlatformFirstSalePercentage', self.PLATFORM_FIRST_SALE_PERCENTAGE, block_number)
            ),
            platform_second_sale_percentage=decode_uint(
                self._call('defaultPlatformSecondSalePercentage', self.PLATFORM_SECOND_SALE_PERCENTAGE, block_number)
            ),
            platform_address=None if platform_address == ZERO_ADDRESS else platform_address
        )

    def query_control_levers(self, token_id: int, block_number: int) -> List[ControlLeverSpec]:
        """Levers of a controller token

        getControlToken returns a flat int256[] of (min, max, current)
        triples; a lever's id is its position in that list.
        """
        data = self.GET_CONTROL_TOKEN + encode_uint(token_id)
        values = decode_int_array(self._call('getControlToken', data, block_number))
        if len(values) % 3:
            raise ValueError(f"getControlToken returned {len(values)} values, expected triples")
        return [
            ControlLeverSpec(
                lever_id=i // 3,
                min_value=values[i],
                max_value=values[i + 1],
                current_value=values[i + 2]
            )
            for i in range(0, len(values), 3)
        ]

__all__ = [
    'ContractReader',
    'selector',
    'encode_uint',
    'encode_address',
    'decode_uint',
    'decode_address',
    'decode_int_array',
]
