"""
Frame Records

In-memory shape of a decoded replay, as handed over by the upstream parser.
One Frame per simulation tick; each port carries a leader and (for paired
characters) a follower, each with a pre-state and post-state block.

Version-gated fields live in linear optional chains: every tier holds the
fields introduced at one protocol version plus an optional pointer to the
next tier, e.g. Post -> PostV0_2 -> PostV2_0 -> ... A later tier can only
exist inside an earlier one.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Union

# Index of the first frame of every game (frames before 0 are the countdown)
FIRST_FRAME_INDEX = -123


class Direction(IntEnum):
    LEFT = -1
    RIGHT = 1


DirectionLike = Union[Direction, int, float]


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass
class Velocity:
    x: float = 0.0
    y: float = 0.0


@dataclass
class Velocities:
    autogenous: Velocity = field(default_factory=Velocity)
    knockback: Velocity = field(default_factory=Velocity)


@dataclass
class TriggersPhysical:
    l: float = 0.0
    r: float = 0.0


@dataclass
class Triggers:
    logical: float = 0.0
    physical: TriggersPhysical = field(default_factory=TriggersPhysical)


@dataclass
class Buttons:
    logical: int = 0
    physical: int = 0


# Pre-state chain

@dataclass
class PreV1_4:
    damage: float = 0.0


@dataclass
class PreV1_2:
    raw_analog_x: int = 0
    v1_4: Optional[PreV1_4] = None


@dataclass
class Pre:
    position: Position = field(default_factory=Position)
    direction: DirectionLike = Direction.RIGHT
    joystick: Position = field(default_factory=Position)
    cstick: Position = field(default_factory=Position)
    triggers: Triggers = field(default_factory=Triggers)
    random_seed: int = 0
    buttons: Buttons = field(default_factory=Buttons)
    state: int = 0
    v1_2: Optional[PreV1_2] = None


# Post-state chain

@dataclass
class PostV3_8:
    hitlag: float = 0.0


@dataclass
class PostV3_5:
    velocities: Velocities = field(default_factory=Velocities)
    v3_8: Optional[PostV3_8] = None


@dataclass
class PostV2_1:
    hurtbox_state: int = 0
    v3_5: Optional[PostV3_5] = None


@dataclass
class PostV2_0:
    flags: int = 0
    misc_as: float = 0.0
    airborne: bool = False
    ground: int = 0
    jumps: int = 0
    l_cancel: Optional[bool] = None  # None: not attempted
    v2_1: Optional[PostV2_1] = None


@dataclass
class PostV0_2:
    state_age: float = 0.0
    v2_0: Optional[PostV2_0] = None


@dataclass
class Post:
    position: Position = field(default_factory=Position)
    direction: DirectionLike = Direction.RIGHT
    damage: float = 0.0
    shield: float = 60.0
    state: int = 0
    character: int = 0
    last_attack_landed: Optional[int] = None
    combo_count: int = 0
    last_hit_by: Optional[int] = None
    stocks: int = 4
    v0_2: Optional[PostV0_2] = None


# Item chain

@dataclass
class ItemV3_6:
    owner: Optional[int] = None


@dataclass
class ItemV3_2:
    misc: bytes = b"\x00\x00\x00\x00"
    v3_6: Optional[ItemV3_6] = None


@dataclass
class Item:
    id: int = 0
    type: int = 0
    state: int = 0
    direction: DirectionLike = Direction.RIGHT
    position: Position = field(default_factory=Position)
    velocity: Velocity = field(default_factory=Velocity)
    damage: int = 0
    timer: float = 0.0
    v3_2: Optional[ItemV3_2] = None


# Frame-level blocks

@dataclass
class Start:
    random_seed: int = 0


@dataclass
class EndV3_7:
    latest_finalized_frame: int = 0


@dataclass
class End:
    v3_7: Optional[EndV3_7] = None


@dataclass
class Data:
    """Pre- and post-state of one character on one frame."""
    pre: Pre = field(default_factory=Pre)
    post: Post = field(default_factory=Post)


@dataclass
class PortData:
    """
    One occupied port on one frame.

    Attributes:
        port: Port number as reported by the game (0-3)
        leader: The port's main character
        follower: Second character for paired characters, else None
    """
    port: int
    leader: Data = field(default_factory=Data)
    follower: Optional[Data] = None


@dataclass
class Frame:
    """
    A single simulation tick.

    Attributes:
        index: Frame index, starting at FIRST_FRAME_INDEX
        ports: Per-port data, same port order on every frame
        start: Frame start block, if the replay version records one
        end: Frame end block, if the replay version records one
        items: Active items on this frame (None when not recorded)
    """
    index: int
    ports: List[PortData] = field(default_factory=list)
    start: Optional[Start] = None
    end: Optional[End] = None
    items: Optional[List[Item]] = None
