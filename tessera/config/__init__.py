"""
Tessera Configuration Module

Field catalogue (which columns exist at which protocol tier) and conversion
settings.
"""

from tessera.config.conversion_config import ConversionConfig, MAX_ITEMS
from tessera.config.field_config import (
    CHAINS,
    END_CHAIN,
    ITEM_CHAIN,
    ITEM_ID_SENTINEL,
    POST_CHAIN,
    PRE_CHAIN,
    START_CHAIN,
    UINT8_SENTINEL,
    ChainSpec,
    FieldConfig,
    FieldSpec,
    TierSpec,
)

__all__ = [
    'ConversionConfig',
    'MAX_ITEMS',
    'CHAINS',
    'END_CHAIN',
    'ITEM_CHAIN',
    'ITEM_ID_SENTINEL',
    'POST_CHAIN',
    'PRE_CHAIN',
    'START_CHAIN',
    'UINT8_SENTINEL',
    'ChainSpec',
    'FieldConfig',
    'FieldSpec',
    'TierSpec',
]
