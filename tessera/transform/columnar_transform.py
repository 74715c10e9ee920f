"""
Columnar Transform

Reorganizes frame records (row-oriented, nested, version-gated) into a
ColumnTree (one typed numpy column per leaf field) in a single pass.

Two addressing disciplines are used:
    - dense: per-port and per-frame columns are pre-sized from the frame count
      and the first frame's port count, and written by index at (port, frame)
    - append: item columns grow as items are visited, since the number of
      items per frame is only known once the frame is reached
"""

from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from tessera.config.field_config import (
    END_CHAIN,
    ITEM_CHAIN,
    POST_CHAIN,
    PRE_CHAIN,
    START_CHAIN,
)
from tessera.errors import ConversionError, EmptyInputError, TierMismatchError
from tessera.frames.records import Data, Frame
from tessera.transform.column_tree import (
    ChainColumns,
    ColumnTree,
    ItemColumns,
    PortColumns,
    port_numbers,
)
from tessera.transform.tier_resolver import TierDepths, resolve_tiers

Index = Union[int, Tuple[int, int]]


def _tier_nodes(columns: Union[ChainColumns, ItemColumns], node: Any, frame: Frame) -> list:
    """Record of every tier the columns expect, failing if one is missing."""
    nodes = columns.chain.nodes(node, columns.depth)
    for k, tier_node in enumerate(nodes):
        if tier_node is None:
            raise TierMismatchError(
                f"Tier '{columns.chain.tiers[k].name}' of chain '{columns.chain.name}' "
                f"was resolved as present but is missing from a frame",
                {'frame': frame.index, 'chain': columns.chain.name, 'tier': k},
            )
    return nodes


def _write_chain(columns: ChainColumns, node: Any, index: Index, frame: Frame) -> None:
    for k, tier_node in enumerate(_tier_nodes(columns, node, frame)):
        for spec in columns.chain.tiers[k].fields:
            columns.columns[spec.name][index] = spec.extract(tier_node)


def _write_port(data: Data, slot: PortColumns, index: Tuple[int, int], frame: Frame) -> None:
    _write_chain(slot.pre, data.pre, index, frame)
    _write_chain(slot.post, data.post, index, frame)


def _append_items(items: ItemColumns, frame: Frame) -> None:
    frame_items = frame.items or []
    items.append_frame(len(frame_items))
    for item in frame_items:
        for k, tier_node in enumerate(_tier_nodes(items, item, frame)):
            for spec in items.chain.tiers[k].fields:
                items.append(spec.name, spec.extract(tier_node))


def _allocate_port(depths: TierDepths, shape: Tuple[int, int]) -> PortColumns:
    return PortColumns(
        pre=ChainColumns.allocate(PRE_CHAIN, depths.pre, shape),
        post=ChainColumns.allocate(POST_CHAIN, depths.post, shape),
    )


def transform(frames: Sequence[Frame], depths: Optional[TierDepths] = None) -> ColumnTree:
    """
    Transform an ordered frame sequence into a populated ColumnTree.

    Follower columns are allocated for every port but only written where a
    frame actually supplies follower data. Start/end columns are only written
    on frames that carry the block; other positions stay zero.

    Args:
        frames: Ordered, non-empty frame records
        depths: Pre-resolved tier depths (resolved from the frames if omitted)

    Returns:
        Read-only ColumnTree

    Raises:
        EmptyInputError: If frames is empty
        TierMismatchError: If a frame lacks a tier resolved as present
        ConversionError: If a frame's port count differs from the first frame
    """
    if not frames:
        raise EmptyInputError("Cannot transform an empty frame sequence")

    if depths is None:
        depths = resolve_tiers(frames)

    num_frames = len(frames)
    ports = port_numbers(frames[0].ports)
    shape = (len(ports), num_frames)

    tree = ColumnTree(
        depths=depths,
        ports=ports,
        frame_indexes=np.array([f.index for f in frames], dtype=np.int32),
        leader=_allocate_port(depths, shape),
        follower=_allocate_port(depths, shape),
        items=ItemColumns.allocate(ITEM_CHAIN, depths.item),
        start=ChainColumns.allocate(START_CHAIN, depths.start, (num_frames,))
        if depths.start >= 0 else None,
        end=ChainColumns.allocate(END_CHAIN, depths.end, (num_frames,))
        if depths.end >= 0 else None,
    )

    for f_idx, frame in enumerate(frames):
        if len(frame.ports) != len(ports):
            raise ConversionError(
                f"Frame has {len(frame.ports)} ports, first frame has {len(ports)}",
                {'frame': frame.index},
            )

        if tree.start is not None and frame.start is not None:
            _write_chain(tree.start, frame.start, f_idx, frame)

        if tree.end is not None and frame.end is not None:
            _write_chain(tree.end, frame.end, f_idx, frame)

        for p_idx, port_data in enumerate(frame.ports):
            _write_port(port_data.leader, tree.leader, (p_idx, f_idx), frame)
            if port_data.follower is not None:
                _write_port(port_data.follower, tree.follower, (p_idx, f_idx), frame)

        _append_items(tree.items, frame)

    tree.items.finish()
    tree.freeze()
    return tree
