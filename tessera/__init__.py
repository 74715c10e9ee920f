"""
Tessera - Replay Frame Columnar Encoder

A library for turning decoded game-replay frames into columnar files.

Main interfaces:
    ConversionPipeline: Convert a replay's frames and write every configured output
    ConversionConfig: Sink settings (formats, compression, item capacity)
    transform: Frames -> ColumnTree of typed numpy columns
    write_frames / write_items / write_hdf5: Individual sinks
"""

from tessera.config.conversion_config import ConversionConfig
from tessera.errors import ConversionError
from tessera.pipeline import ConversionPipeline, ConversionResult
from tessera.sinks import write_frames, write_hdf5, write_items
from tessera.transform import ColumnTree, TierDepths, resolve_tiers, transform

__version__ = '0.1.0'

__all__ = [
    'ColumnTree',
    'ConversionConfig',
    'ConversionError',
    'ConversionPipeline',
    'ConversionResult',
    'TierDepths',
    'resolve_tiers',
    'transform',
    'write_frames',
    'write_hdf5',
    'write_items',
]
