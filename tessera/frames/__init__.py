"""
Tessera Frames Module

Record types produced by the upstream replay parser, plus character ids.
"""

from tessera.frames.records import (
    FIRST_FRAME_INDEX,
    Buttons,
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
    Triggers,
    TriggersPhysical,
    Velocities,
    Velocity,
)
from tessera.frames.characters import (
    Character,
    PAIRED_CHARACTERS,
    character_name,
    is_paired,
)

__all__ = [
    'FIRST_FRAME_INDEX',
    'Buttons',
    'Data',
    'Direction',
    'End',
    'EndV3_7',
    'Frame',
    'Item',
    'ItemV3_2',
    'ItemV3_6',
    'PortData',
    'Position',
    'Post',
    'PostV0_2',
    'PostV2_0',
    'PostV2_1',
    'PostV3_5',
    'PostV3_8',
    'Pre',
    'PreV1_2',
    'PreV1_4',
    'Start',
    'Triggers',
    'TriggersPhysical',
    'Velocities',
    'Velocity',
    'Character',
    'PAIRED_CHARACTERS',
    'character_name',
    'is_paired',
]
