"""Tests for schema management."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from database import DatabaseSchemaError
from database.lib.schema_manager import SchemaManager

def test_load_schema_files():
    schemas = SchemaManager(pool=None)._load_schema_files()

    assert list(schemas) == [1]
    tables = {table['name'] for table in schemas[1]['tables']}
    assert tables == {'entities'}

@pytest.mark.asyncio
async def test_create_table_sql():
    conn = MagicMock()
    conn.execute = AsyncMock()
    table = SchemaManager(pool=None)._load_schema_files()[1]['tables'][0]

    await SchemaManager(pool=None)._create_table(conn, table)

    create_sql = conn.execute.call_args_list[0][0][0]
    assert create_sql.startswith('CREATE TABLE IF NOT EXISTS entities (')
    assert 'data JSONB NOT NULL' in create_sql
    assert 'PRIMARY KEY (entity_type, entity_id)' in create_sql

    index_sql = conn.execute.call_args_list[1][0][0]
    assert index_sql == 'CREATE INDEX IF NOT EXISTS idx_entities_type ON entities(entity_type)'

@pytest.mark.asyncio
async def test_missing_schema_dir_is_error(tmp_path):
    conn = MagicMock()
    conn.execute = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    pool = MagicMock()
    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=False)

    manager = SchemaManager(pool, schema_dir=tmp_path / 'missing')

    with pytest.raises(DatabaseSchemaError):
        await manager.initialize()
