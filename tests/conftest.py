"""
Shared pytest fixtures for all tests.

This file is automatically loaded by pytest and makes fixtures available
to all test files without needing to import them. The builders below produce
synthetic frame records; values are derived from the frame and port position
so tests can check exactly where each one lands.
"""

import pytest
from typing import List, Optional, Sequence

from tessera.config.conversion_config import ConversionConfig
from tessera.frames.characters import Character
from tessera.frames.records import (
    FIRST_FRAME_INDEX,
    Data,
    Direction,
    End,
    EndV3_7,
    Frame,
    Item,
    ItemV3_2,
    ItemV3_6,
    PortData,
    Position,
    Post,
    PostV0_2,
    PostV2_0,
    PostV2_1,
    PostV3_5,
    PostV3_8,
    Pre,
    PreV1_2,
    PreV1_4,
    Start,
)


# ============================================================================
# Record Builders
# ============================================================================

def make_pre(depth: int = 0, x: float = 0.0) -> Pre:
    """Pre-state record with tiers up to `depth` (0 = base, 2 = v1_4)."""
    pre = Pre(position=Position(x, -x), direction=Direction.LEFT, random_seed=42, state=14)
    if depth >= 1:
        pre.v1_2 = PreV1_2(raw_analog_x=127)
    if depth >= 2:
        pre.v1_2.v1_4 = PreV1_4(damage=x)
    return pre


def make_post(depth: int = 0, character: int = Character.FOX, damage: float = 0.0) -> Post:
    """Post-state record with tiers up to `depth` (0 = base, 5 = v3_8)."""
    post = Post(character=int(character), damage=damage, state=14)
    if depth >= 1:
        post.v0_2 = PostV0_2(state_age=1.0)
    if depth >= 2:
        post.v0_2.v2_0 = PostV2_0(flags=1 << 40, airborne=True, jumps=2, l_cancel=False)
    if depth >= 3:
        post.v0_2.v2_0.v2_1 = PostV2_1(hurtbox_state=1)
    if depth >= 4:
        post.v0_2.v2_0.v2_1.v3_5 = PostV3_5()
    if depth >= 5:
        post.v0_2.v2_0.v2_1.v3_5.v3_8 = PostV3_8(hitlag=3.0)
    return post


def make_item(depth: int = 0, item_id: int = 0, owner: Optional[int] = None,
              misc: bytes = b"\x00\x00\x00\x00") -> Item:
    """Item record with tiers up to `depth` (0 = base, 2 = v3_6)."""
    item = Item(id=item_id, type=99, direction=Direction.LEFT, timer=60.0)
    if depth >= 1:
        item.v3_2 = ItemV3_2(misc=misc)
    if depth >= 2:
        item.v3_2.v3_6 = ItemV3_6(owner=owner)
    return item


def make_end(depth: int, index: int) -> Optional[End]:
    """End block with tiers up to `depth`; -1 means no block."""
    if depth < 0:
        return None
    return End(v3_7=EndV3_7(latest_finalized_frame=index) if depth >= 1 else None)


def make_frames(
    num_frames: int = 3,
    num_ports: int = 2,
    pre_depth: int = 0,
    post_depth: int = 0,
    item_depth: int = 0,
    items_per_frame: Optional[Sequence[int]] = None,
    characters: Optional[Sequence[int]] = None,
    with_start: bool = False,
    end_depth: int = -1,
) -> List[Frame]:
    """
    Build an ordered frame sequence.

    Leader pre.position.x is the frame position; leader post.damage is
    10 * port + frame position. Ports holding a paired character also get a
    follower whose damage is offset by 1000. Item ids are 100 * frame
    position + item position.
    """
    characters = list(characters or [Character.FOX] * num_ports)
    items_per_frame = list(items_per_frame or [0] * num_frames)

    frames = []
    for f in range(num_frames):
        ports = []
        for p in range(num_ports):
            leader = Data(
                pre=make_pre(pre_depth, x=float(f)),
                post=make_post(post_depth, characters[p], damage=float(10 * p + f)),
            )
            follower = None
            if characters[p] in (Character.POPO, Character.NANA):
                follower = Data(
                    pre=make_pre(pre_depth, x=float(f)),
                    post=make_post(post_depth, Character.NANA, damage=float(1000 + 10 * p + f)),
                )
            ports.append(PortData(port=p, leader=leader, follower=follower))

        items = [
            make_item(item_depth, item_id=100 * f + i, owner=i % 2 or None,
                      misc=bytes([i, 0, 0, 0]))
            for i in range(items_per_frame[f])
        ]

        frames.append(Frame(
            index=FIRST_FRAME_INDEX + f,
            ports=ports,
            start=Start(random_seed=1000 + f) if with_start else None,
            end=make_end(end_depth, FIRST_FRAME_INDEX + f),
            items=items,
        ))
    return frames


# ============================================================================
# Frame Fixtures
# ============================================================================

@pytest.fixture
def base_frames():
    """Three frames, two ports, base tiers only, no items."""
    return make_frames()


@pytest.fixture
def popo_frames():
    """Three frames, port 0 playing Popo (with Nana follower), port 1 Fox."""
    return make_frames(characters=[Character.POPO, Character.FOX])


@pytest.fixture
def full_frames():
    """Every tier present, start/end blocks, a varying number of items."""
    return make_frames(
        num_frames=4,
        num_ports=2,
        pre_depth=2,
        post_depth=5,
        item_depth=2,
        items_per_frame=[0, 2, 1, 0],
        with_start=True,
        end_depth=1,
    )


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config():
    """Provide a configuration that runs every sink."""
    return ConversionConfig(output_formats=['parquet', 'hdf5'])


# ============================================================================
# Builder Fixtures
# ============================================================================

@pytest.fixture
def frame_builder():
    """Provide make_frames so tests can build custom sequences."""
    return make_frames


@pytest.fixture
def record_builders():
    """Provide the single-record builders."""
    return {'pre': make_pre, 'post': make_post, 'item': make_item, 'end': make_end}
