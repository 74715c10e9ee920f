"""
Version Tier Resolver

Determines, once per replay, how deep each optional tier chain goes.

Tier presence is fixed for a whole replay file (fields are version-locked), so
it is read from a single record and trusted for every other frame. Frames whose
actual depth differs from the resolved one are not re-validated here.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from tessera.config.field_config import (
    END_CHAIN,
    ITEM_CHAIN,
    POST_CHAIN,
    PRE_CHAIN,
    START_CHAIN,
    ChainSpec,
    CHAINS,
)
from tessera.errors import EmptyInputError
from tessera.frames.records import Frame, Item


@dataclass(frozen=True)
class TierDepths:
    """
    Deepest present tier per chain.

    Depth 0 is the base tier. For the frame-level start/end blocks, -1 means
    the block itself is absent from the replay.
    """
    pre: int
    post: int
    item: int
    start: int = -1
    end: int = -1

    def depth(self, chain_name: str) -> int:
        return getattr(self, chain_name)

    def flags(self, chain_name: str) -> List[bool]:
        """Presence flag of every tier in the named chain."""
        return CHAINS[chain_name].depth_to_flags(self.depth(chain_name))


def chain_depth(chain: ChainSpec, node) -> int:
    """Deepest present tier of a chain, starting from its base-tier record."""
    return chain.flags_to_depth(chain.walk(node))


def _first_item(frames: Sequence[Frame]) -> Optional[Item]:
    for frame in frames:
        if frame.items:
            return frame.items[0]
    return None


def resolve_tiers(frames: Sequence[Frame]) -> TierDepths:
    """
    Resolve tier depths for a whole batch of frames.

    Pre/post depths come from frame zero (first port's leader). Items are
    rarely present on frame zero, so the item depth comes from the first item
    in the batch; with no items at all only the base tier is kept. Start
    presence is read from the first frame, end presence from the last.

    Args:
        frames: Ordered frame records

    Returns:
        TierDepths for the batch

    Raises:
        EmptyInputError: If there are no frames or frame zero has no ports
    """
    if not frames:
        raise EmptyInputError("Cannot resolve tiers: frame sequence is empty")

    first = frames[0]
    if not first.ports:
        raise EmptyInputError(
            "Cannot resolve tiers: first frame has no occupied ports",
            {'frame': first.index},
        )

    leader = first.ports[0].leader
    item = _first_item(frames)
    last = frames[-1]

    return TierDepths(
        pre=chain_depth(PRE_CHAIN, leader.pre),
        post=chain_depth(POST_CHAIN, leader.post),
        item=chain_depth(ITEM_CHAIN, item) if item is not None else 0,
        start=chain_depth(START_CHAIN, first.start),
        end=chain_depth(END_CHAIN, last.end),
    )
