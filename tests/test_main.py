"""Tests for the command line entry point."""

import json
from unittest.mock import patch

import main as cli
from conftest import ALICE, BOB

CONTRACT = '0x6c424c25e9f1fff9642cb5b7750b0db7312c29ad'

def write_settings(path):
    (path / 'settings.conf').write_text(
        '[DEFAULT]\n'
        'store = memory\n'
        'rpc_url = http://127.0.0.1:8545\n'
        f'contract_address = {CONTRACT}\n'
        'max_source_retries = 1\n'
    )

def write_events(path, *events):
    lines = []
    for block, (name, params) in enumerate(events, 1):
        lines.append(json.dumps({
            'event': name,
            'block_number': block,
            'log_index': 0,
            'timestamp': 1600000000 + block,
            'tx_hash': f"0x{block:064x}",
            'params': params
        }))
    path.write_text('\n'.join(lines) + '\n')
    return path

def test_replay_command(tmp_path, source):
    write_settings(tmp_path)
    events = write_events(
        tmp_path / 'events.jsonl',
        ('CreatorWhitelisted', {'token_id': 5, 'layer_count': 2, 'creator': ALICE}),
        ('BuyPriceSet', {'token_id': 6, 'price': 10}),
    )

    with patch.object(cli.ContractReader, 'from_settings', return_value=source):
        code = cli.main(['--settings', str(tmp_path), 'replay', str(events)])

    assert code == 0
    assert cli.monitor.applied == 2

def test_replay_stops_on_fatal_error(tmp_path, source):
    write_settings(tmp_path)
    events = write_events(
        tmp_path / 'events.jsonl',
        ('BidProposed', {'token_id': 6, 'bid_amount': 1, 'bidder': BOB}),
    )

    with patch.object(cli.ContractReader, 'from_settings', return_value=source):
        code = cli.main(['--settings', str(tmp_path), 'replay', str(events)])

    assert code == 1
    assert cli.monitor.applied == 0

def test_invalid_settings(tmp_path, capsys):
    code = cli.main(['--settings', str(tmp_path), 'replay', 'events.jsonl'])

    assert code == 2
    assert 'Configuration error' in capsys.readouterr().err
