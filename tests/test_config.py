"""Tests for settings.conf loading."""

import pytest

from config import SettingsError, load_settings_conf

CONTRACT = '0x6C424C25e9F1ffF9642cB5B7750b0Db7312c29aD'

def write_settings(path, **values):
    lines = ['[DEFAULT]'] + [f"{key} = {value}" for key, value in values.items()]
    (path / 'settings.conf').write_text('\n'.join(lines) + '\n')

def test_load_with_defaults(tmp_path):
    write_settings(tmp_path, rpc_url='http://127.0.0.1:8545', contract_address=CONTRACT)

    settings = load_settings_conf(str(tmp_path))

    assert settings['store'] == 'postgres'
    assert settings['contract_address'] == CONTRACT.lower()
    assert settings['rpc_timeout'] == 10.0
    assert settings['max_source_retries'] == 5
    assert settings['api_port'] == 8000
    assert settings['log_level'] == 'INFO'

def test_values_are_converted(tmp_path):
    write_settings(
        tmp_path,
        store='memory',
        rpc_url='http://node:8545',
        contract_address=CONTRACT,
        rpc_timeout='2.5',
        max_source_retries='8',
        log_level='debug',
        api_port='9000'
    )

    settings = load_settings_conf(str(tmp_path))

    assert settings['store'] == 'memory'
    assert settings['rpc_timeout'] == 2.5
    assert settings['max_source_retries'] == 8
    assert settings['log_level'] == 'DEBUG'
    assert settings['api_port'] == 9000

def test_missing_file(tmp_path):
    with pytest.raises(SettingsError, match='not found'):
        load_settings_conf(str(tmp_path))

def test_missing_required_settings(tmp_path):
    write_settings(tmp_path, store='memory')

    with pytest.raises(SettingsError) as exc_info:
        load_settings_conf(str(tmp_path))

    message = str(exc_info.value)
    assert 'rpc_url' in message
    assert 'contract_address' in message

@pytest.mark.parametrize('overrides', [
    {'contract_address': '0x1234'},
    {'store': 'redis'},
    {'rpc_timeout': '0'},
    {'max_source_retries': 'many'},
    {'api_port': '70000'},
    {'log_level': 'LOUD'},
])
def test_invalid_settings(tmp_path, overrides):
    values = {'rpc_url': 'http://127.0.0.1:8545', 'contract_address': CONTRACT}
    values.update(overrides)
    write_settings(tmp_path, **values)

    with pytest.raises(SettingsError):
        load_settings_conf(str(tmp_path))
