"""
Parquet Sink

Writes a ColumnTree as two nested Parquet files:

    - frames: one row group per port (leader), then one per paired-character
      port (follower), each holding one row per frame
    - items: a single row group with one row per frame and the frame's items
      as a repeated group

The generated message-type schema string is embedded in the file's key-value
metadata, so readers can check which protocol tiers the file holds.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd
import pyarrow as pa
import pyarrow.compute as pc
import pyarrow.parquet as pq

from tessera.config.conversion_config import ConversionConfig
from tessera.encoding.assembler import assemble
from tessera.encoding.level_encoder import encode_frames, encode_items
from tessera.encoding.schema import (
    SCHEMA_METADATA_KEY,
    SchemaNode,
    check_schema,
    frame_schema,
    item_schema,
    parse_message,
    tier_groups,
)
from tessera.errors import SchemaError
from tessera.sinks.atomic import atomic_output
from tessera.transform.column_tree import ColumnTree

logger = logging.getLogger('tessera.sinks')


def _compression(config: ConversionConfig) -> Optional[str]:
    if config.parquet_compression == 'none':
        return None
    return config.parquet_compression


def _write_tables(path: Union[str, Path], schema: SchemaNode, tables: List[pa.Table],
                  config: ConversionConfig) -> Path:
    path = Path(path)
    with atomic_output(path) as tmp:
        with pq.ParquetWriter(
            str(tmp),
            schema.arrow_schema(),
            compression=_compression(config),
            use_dictionary=False,
            data_page_version='2.0',
        ) as writer:
            for table in tables:
                writer.write_table(table, row_group_size=max(table.num_rows, 1))

    logger.info(f"Wrote {len(tables)} row groups to {path}")
    return path


def write_frames(tree: ColumnTree, path: Union[str, Path],
                 config: Optional[ConversionConfig] = None) -> Path:
    """
    Write per-port frame data.

    The schema is generated and checked, and every row group is assembled,
    before the output file is opened.

    Args:
        tree: Populated column tree
        path: Destination .parquet file
        config: Sink settings (compression, follower groups)

    Returns:
        Path of the written file

    Raises:
        TierOrderError: If the tree's tier flags are inconsistent
        SchemaError: If the generated schema is malformed
    """
    config = config or ConversionConfig()
    schema = frame_schema(tree.depths.flags('pre'), tree.depths.flags('post'))
    check_schema(schema)

    groups = encode_frames(tree, include_followers=config.write_follower_groups, schema=schema)
    tables = [assemble(g, schema) for g in groups]
    return _write_tables(path, schema, tables, config)


def write_items(tree: ColumnTree, path: Union[str, Path],
                config: Optional[ConversionConfig] = None) -> Path:
    """
    Write item data, one row per frame.

    Frames without items are still written, as rows with an empty item list.
    """
    config = config or ConversionConfig()
    schema = item_schema(tree.depths.flags('item'))
    check_schema(schema)

    table = assemble(encode_items(tree, schema), schema)
    return _write_tables(path, schema, [table], config)


# ---------------------------------------------------------------------------
# Reading back
# ---------------------------------------------------------------------------

def _flatten(table: pa.Table) -> pa.Table:
    while any(pa.types.is_struct(f.type) for f in table.schema):
        table = table.flatten()
    return table


def read_schema(path: Union[str, Path]) -> SchemaNode:
    """
    Parse the message-type schema embedded in a file written by this sink.

    Raises:
        SchemaError: If the file has no embedded schema
    """
    metadata = pq.read_schema(str(path)).metadata or {}
    if SCHEMA_METADATA_KEY not in metadata:
        raise SchemaError(f"No embedded schema in {path}")
    return parse_message(metadata[SCHEMA_METADATA_KEY].decode('utf-8'))


def file_tiers(path: Union[str, Path], group: str) -> List[str]:
    """Optional tier groups present under a top-level group, e.g. ['v1_2', 'v1_4']."""
    return tier_groups(read_schema(path), group)


def read_frames(path: Union[str, Path]) -> pd.DataFrame:
    """
    Read a frame file into a flat DataFrame.

    Nested groups become dotted column names ('pre.position.x',
    'post.v0_2.v2_0.flags', ...). Rows keep file order: leaders port by
    port, then followers.
    """
    return _flatten(pq.read_table(str(path))).to_pandas()


def read_items(path: Union[str, Path]) -> pd.DataFrame:
    """
    Read an item file into a DataFrame with one row per item.

    Each row carries the 'index' of the frame the item belongs to. Frames
    without items contribute no rows.
    """
    table = pq.read_table(str(path))
    items = table.column('item').combine_chunks()

    flat = pc.list_flatten(items)
    names = [flat.type.field(i).name for i in range(flat.type.num_fields)]
    elements = pa.Table.from_arrays(flat.flatten(), names=names)

    index = pc.take(table.column('index'), pc.list_parent_indices(items))
    elements = elements.add_column(0, 'index', index)
    return _flatten(elements).to_pandas()
