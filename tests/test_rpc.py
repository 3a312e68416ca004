"""Tests for the JSON-RPC client and the contract view reader."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from projection import SourceUnavailableError
from rpc import ContractCallError, EthereumRPC, NodeAuthError, NodeConnectionError, RPCMethod
from rpc.contract import (
    ContractReader,
    decode_int_array,
    encode_address,
    encode_uint,
    selector,
)

CONTRACT = '0x' + '12' * 20
OWNER = '0x' + 'a' * 40
CONTROLLER = '0x' + 'c' * 40

def word(value: int) -> str:
    return format(value % 2 ** 256, '064x')

def test_selector_known_signatures():
    assert selector('transfer(address,uint256)') == '0xa9059cbb'
    assert selector('balanceOf(address)') == '0x70a08231'

def test_encoding():
    assert encode_uint(6) == '0' * 63 + '6'
    assert encode_address('0x' + 'A' * 40) == '0' * 24 + 'a' * 40
    with pytest.raises(ValueError):
        encode_uint(-1)

def test_decode_int_array_twos_complement():
    data = '0x' + word(32) + word(3) + word(5) + word(-10) + word(2 ** 100)
    assert decode_int_array(data) == [5, -10, 2 ** 100]

def test_decode_int_array_truncated():
    data = '0x' + word(32) + word(3) + word(5)
    with pytest.raises(ValueError):
        decode_int_array(data)

@pytest.fixture
def client():
    return MagicMock(spec=EthereumRPC)

@pytest.fixture
def reader(client):
    return ContractReader(client, CONTRACT)

def test_query_control_levers(reader, client):
    values = [0, 100, 50, -10, 10, 0]
    client.eth_call.return_value = '0x' + word(32) + word(len(values)) + ''.join(word(v) for v in values)

    levers = reader.query_control_levers(6, 1234)

    assert [(l.lever_id, l.min_value, l.max_value, l.current_value) for l in levers] == [
        (0, 0, 100, 50),
        (1, -10, 10, 0),
    ]
    client.eth_call.assert_called_once_with(
        {'to': CONTRACT, 'data': ContractReader.GET_CONTROL_TOKEN + encode_uint(6)},
        hex(1234)
    )

def test_query_control_levers_rejects_partial_triples(reader, client):
    client.eth_call.return_value = '0x' + word(32) + word(2) + word(1) + word(2)
    with pytest.raises(ValueError):
        reader.query_control_levers(6, 1)

def test_query_current_permission(reader, client):
    client.eth_call.return_value = '0x' + '0' * 24 + 'c' * 40
    assert reader.query_current_permission(6, OWNER, 99) == CONTROLLER

    data = client.eth_call.call_args[0][0]['data']
    assert data == ContractReader.PERMISSIONED_CONTROLLERS + encode_address(OWNER) + encode_uint(6)

    client.eth_call.return_value = '0x' + '0' * 64
    assert reader.query_current_permission(6, OWNER, 99) is None

def test_query_global_config(reader, client):
    responses = {
        ContractReader.ARTIST_SECOND_SALE_PERCENTAGE: '0x' + word(10),
        ContractReader.PLATFORM_FIRST_SALE_PERCENTAGE: '0x' + word(15),
        ContractReader.PLATFORM_SECOND_SALE_PERCENTAGE: '0x' + word(1),
        ContractReader.PLATFORM_ADDRESS: '0x' + '0' * 24 + 'f' * 40,
    }
    client.eth_call.side_effect = lambda call, block: responses[call['data']]

    config = reader.query_global_config(7)

    assert config.artist_second_sale_percentage == 10
    assert config.platform_first_sale_percentage == 15
    assert config.platform_second_sale_percentage == 1
    assert config.platform_address == '0x' + 'f' * 40

def test_unreachable_node_is_retryable(reader, client):
    client.eth_call.side_effect = NodeConnectionError("Failed to connect to node")
    with pytest.raises(SourceUnavailableError) as exc_info:
        reader.query_global_config(7)
    assert exc_info.value.query == 'platformAddress'

def test_reverted_call_propagates(reader, client):
    client.eth_call.side_effect = ContractCallError("execution reverted", 3, 'eth_call')
    with pytest.raises(ContractCallError):
        reader.query_control_levers(6, 1)

def mock_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    return response

def test_call_method_returns_result():
    rpc = EthereumRPC('http://node:8545')
    with patch.object(rpc.session, 'post', return_value=mock_response(body={'result': '0x10'})) as post:
        assert rpc.eth_blockNumber() == '0x10'

    payload = post.call_args.kwargs['json']
    assert payload['method'] == 'eth_blockNumber'
    assert payload['params'] == []

def test_client_exposes_read_methods_only():
    rpc = EthereumRPC('http://node:8545')
    assert rpc.session.auth is None

    methods = {name for name, attr in vars(EthereumRPC).items() if isinstance(attr, RPCMethod)}
    assert methods == {'eth_blockNumber', 'eth_chainId', 'eth_call'}

def test_call_method_error_response():
    rpc = EthereumRPC('http://node:8545')
    body = {'error': {'code': 3, 'message': 'execution reverted'}}
    with patch.object(rpc.session, 'post', return_value=mock_response(body=body)):
        with pytest.raises(ContractCallError) as exc_info:
            rpc.eth_call({'to': CONTRACT, 'data': '0x'}, 'latest')
    assert exc_info.value.code == 3
    assert exc_info.value.method == 'eth_call'

def test_call_method_auth_failure():
    rpc = EthereumRPC('http://node:8545')
    with patch.object(rpc.session, 'post', return_value=mock_response(status_code=401)):
        with pytest.raises(NodeAuthError):
            rpc.eth_chainId()

def test_call_method_connection_failure():
    rpc = EthereumRPC('http://node:8545', timeout=1.0)
    with patch.object(rpc.session, 'post', side_effect=requests.exceptions.ConnectionError()):
        with pytest.raises(NodeConnectionError):
            rpc.eth_blockNumber()
