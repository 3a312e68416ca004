"""Command line interface for testing RPC functionality"""
from . import get_client, NodeConnectionError, NodeAuthError, ContractCallError
from .contract import ContractReader
from projection.exceptions import SourceUnavailableError

def test_rpc():
    """Query the node and the configured contract"""
    try:
        client = get_client()
        print("\nTesting node connectivity:")
        print("-" * 50)

        block = int(client.eth_blockNumber(), 16)
        print(f"  Success! Current block height: {block}")
        print(f"  Chain id: {int(client.eth_chainId(), 16)}")

        print("\nTesting contract views:")
        print("-" * 50)
        reader = ContractReader.from_settings(client)
        config = reader.query_global_config(block)
        print(f"  Artist second sale percentage: {config.artist_second_sale_percentage}")
        print(f"  Platform first sale percentage: {config.platform_first_sale_percentage}")
        print(f"  Platform second sale percentage: {config.platform_second_sale_percentage}")
        print(f"  Platform address: {config.platform_address}")

    except NodeConnectionError as e:
        print("\nFailed to connect to node:")
        print(f"  {str(e)}")

    except NodeAuthError as e:
        print("\nAuthentication failed:")
        print(f"  {str(e)}")

    except ContractCallError as e:
        print("\nContract call failed:")
        print(f"  {str(e)}")

    except SourceUnavailableError as e:
        print("\nContract view unavailable:")
        print(f"  {str(e)}")

if __name__ == "__main__":
    test_rpc()
