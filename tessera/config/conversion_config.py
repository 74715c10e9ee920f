"""
Configuration for frame conversion and the output sinks.

Centralizes environment variable loading and sink settings. The values are
passed explicitly into every sink call; nothing here is process-wide state.
"""

from dotenv import load_dotenv
import os
from dataclasses import dataclass, field
from typing import List

from tessera.errors import ConfigurationError

# Fixed number of item slots per frame in flat (HDF5) output
MAX_ITEMS = 16

VALID_OUTPUT_FORMATS = ('parquet', 'hdf5')
VALID_PARQUET_COMPRESSION = ('none', 'snappy', 'gzip', 'zstd', 'lz4', 'brotli')


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class ConversionConfig:
    """
    Configuration for a single replay conversion.

    Attributes:
        max_items: Item slots per frame in flat output
        parquet_compression: Codec name handed to the Parquet writer
        enum_names: Attach human-readable character names to flat output
        write_follower_groups: Emit follower row groups for paired-character ports
        output_formats: Sinks to run ('parquet', 'hdf5')
    """

    max_items: int = MAX_ITEMS
    parquet_compression: str = 'none'
    enum_names: bool = False
    write_follower_groups: bool = True
    output_formats: List[str] = field(default_factory=lambda: ['parquet'])

    @classmethod
    def from_env(cls) -> 'ConversionConfig':
        """
        Load configuration from environment variables (.env file).

        Optional environment variables:
            - TESSERA_MAX_ITEMS: Item slots per frame in flat output
            - TESSERA_PARQUET_COMPRESSION: Parquet codec name
            - TESSERA_ENUM_NAMES: 'true' to attach character names
            - TESSERA_OUTPUT_FORMATS: Comma-separated sink names

        Returns:
            ConversionConfig instance

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        load_dotenv()

        config = cls()

        max_items = os.environ.get("TESSERA_MAX_ITEMS")
        if max_items:
            try:
                config.max_items = int(max_items)
            except ValueError:
                raise ConfigurationError(
                    f"TESSERA_MAX_ITEMS must be an integer, got '{max_items}'"
                )

        compression = os.environ.get("TESSERA_PARQUET_COMPRESSION")
        if compression:
            config.parquet_compression = compression.strip().lower()

        enum_names = os.environ.get("TESSERA_ENUM_NAMES")
        if enum_names:
            config.enum_names = _parse_bool(enum_names)

        output_formats = os.environ.get("TESSERA_OUTPUT_FORMATS")
        if output_formats:
            config.output_formats = [
                f.strip().lower() for f in output_formats.split(',') if f.strip()
            ]

        config.validate()
        return config

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'ConversionConfig':
        """
        Create configuration from a dictionary.

        Example:
            >>> config = ConversionConfig.from_dict({
            ...     'output_formats': ['parquet', 'hdf5'],
            ...     'enum_names': True
            ... })
        """
        config = cls(**config_dict)
        config.validate()
        return config

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: If any setting is out of range
        """
        if self.max_items < 1:
            raise ConfigurationError(f"max_items must be positive, got {self.max_items}")

        if self.parquet_compression not in VALID_PARQUET_COMPRESSION:
            raise ConfigurationError(
                f"Unknown Parquet compression '{self.parquet_compression}'. "
                f"Valid options: {list(VALID_PARQUET_COMPRESSION)}"
            )

        if not self.output_formats:
            raise ConfigurationError("At least one output format is required")

        for fmt in self.output_formats:
            if fmt not in VALID_OUTPUT_FORMATS:
                raise ConfigurationError(
                    f"Unknown output format '{fmt}'. "
                    f"Valid options: {list(VALID_OUTPUT_FORMATS)}"
                )
