"""Schema v1 - Initial entity store schema.

This version includes tables for:
- Projected entities (one row per entity type and id, JSONB payload)
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'entities',
            'columns': [
                {'name': 'entity_type', 'type': 'TEXT', 'nullable': False},
                {'name': 'entity_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'data', 'type': 'JSONB', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'primary_key': ['entity_type', 'entity_id'],
            'indexes': [
                {'name': 'idx_entities_type', 'columns': ['entity_type']}
            ]
        }
    ]
}
