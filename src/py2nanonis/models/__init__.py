"""
Data models for py2nanonis.

Connection settings and the typed results of the client wrappers.
"""

from .connection import (
    ConnectionConfig,
    ClientSettings,
    load_settings,
    save_settings
)

from .instrument import (
    ScanAction,
    ScanDirection,
    VersionInfo,
    ScanFrame,
    ScanBuffer,
    BiasSpectrProps,
    BiasSpectrSettings
)

__all__ = [
    'ConnectionConfig',
    'ClientSettings',
    'load_settings',
    'save_settings',
    'ScanAction',
    'ScanDirection',
    'VersionInfo',
    'ScanFrame',
    'ScanBuffer',
    'BiasSpectrProps',
    'BiasSpectrSettings',
]
