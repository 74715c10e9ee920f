"""
Tessera Sinks

File writers for a populated ColumnTree. Sink settings always arrive as an
explicit ConversionConfig argument.

    write_frames / write_items   nested Parquet (pyarrow)
    write_hdf5                   flat HDF5 (h5py)
"""

from tessera.sinks.atomic import atomic_output
from tessera.sinks.hdf5_sink import write_hdf5
from tessera.sinks.parquet_sink import (
    file_tiers,
    read_frames,
    read_items,
    read_schema,
    write_frames,
    write_items,
)

__all__ = [
    'atomic_output',
    'file_tiers',
    'read_frames',
    'read_items',
    'read_schema',
    'write_frames',
    'write_hdf5',
    'write_items',
]
