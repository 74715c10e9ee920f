"""
Tessera Encoding Module

Nested schemas and level encoding for columnar sinks.

## Quick Start

```python
from tessera.encoding import frame_schema, encode_frames, assemble

schema = frame_schema(tree.depths.flags('pre'), tree.depths.flags('post'))
for group in encode_frames(tree, schema=schema):
    table = assemble(group, schema)   # pyarrow.Table, one row per frame
```
"""

from tessera.encoding.schema import (
    SCHEMA_METADATA_KEY,
    Leaf,
    Repetition,
    SchemaNode,
    TypeTag,
    check_schema,
    frame_schema,
    item_schema,
    parse_message,
    tier_groups,
)
from tessera.encoding.level_encoder import (
    EncodedColumn,
    RowGroup,
    encode_frames,
    encode_items,
    encode_port,
    flat_arrays,
    repeated_levels,
    required_levels,
)
from tessera.encoding.assembler import assemble, list_lengths, tier_depths

__all__ = [
    # Schema
    'SCHEMA_METADATA_KEY',
    'Leaf',
    'Repetition',
    'SchemaNode',
    'TypeTag',
    'check_schema',
    'frame_schema',
    'item_schema',
    'parse_message',
    'tier_groups',

    # Levels
    'EncodedColumn',
    'RowGroup',
    'encode_frames',
    'encode_items',
    'encode_port',
    'flat_arrays',
    'repeated_levels',
    'required_levels',

    # Assembly
    'assemble',
    'list_lengths',
    'tier_depths',
]
