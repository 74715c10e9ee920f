"""
Internal character identifiers as stored in post-state `character` fields.
"""

from enum import IntEnum
from typing import Optional


class Character(IntEnum):
    MARIO = 0
    FOX = 1
    CAPTAIN_FALCON = 2
    DONKEY_KONG = 3
    KIRBY = 4
    BOWSER = 5
    LINK = 6
    SHEIK = 7
    NESS = 8
    PEACH = 9
    POPO = 10
    NANA = 11
    PIKACHU = 12
    SAMUS = 13
    YOSHI = 14
    JIGGLYPUFF = 15
    MEWTWO = 16
    LUIGI = 17
    MARTH = 18
    ZELDA = 19
    YOUNG_LINK = 20
    DR_MARIO = 21
    FALCO = 22
    PICHU = 23
    GAME_AND_WATCH = 24
    GANONDORF = 25
    ROY = 26


# A port whose resident character is one of these is driven by two
# characters at once (leader + follower)
PAIRED_CHARACTERS = frozenset({Character.POPO, Character.NANA})


def is_paired(character: int) -> bool:
    return character in PAIRED_CHARACTERS


def character_name(character: int) -> Optional[str]:
    """Human-readable name for an internal character id, or None if unknown."""
    try:
        return Character(int(character)).name.replace('_', ' ').title()
    except ValueError:
        return None
