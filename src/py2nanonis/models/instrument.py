"""
Data models for values exchanged with the Nanonis software.

Plain dataclasses and enums returned by, or passed to, the NanonisClient
wrappers. Lengths are in meters, angles in degrees and voltages in volts.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ..core.sentinels import Toggle


class ScanAction(Enum):
    """Actions accepted by Scan.Action."""
    START = 0
    STOP = 1
    PAUSE = 2
    RESUME = 3
    FREEZE = 4
    UNFREEZE = 5
    GO_TO_CENTER = 6


class ScanDirection(Enum):
    """Slow-axis scan direction."""
    DOWN = 0
    UP = 1


@dataclass(frozen=True)
class VersionInfo:
    """
    Software versions reported by Util.VersionGet.

    Attributes:
        product_line: e.g. "Generic 5"
        version: e.g. "Nanonis SPM Control Software"
        host_app_release: Release number of the host application
        rt_engine_release: Release number of the real-time engine
    """
    product_line: str
    version: str
    host_app_release: int
    rt_engine_release: int


@dataclass(frozen=True)
class ScanFrame:
    """
    Scan frame position and size.

    Attributes:
        center_x: Frame center X in meters
        center_y: Frame center Y in meters
        width: Frame width in meters
        height: Frame height in meters
        angle: Rotation in degrees (clockwise)
    """
    center_x: float
    center_y: float
    width: float
    height: float
    angle: float = 0.0


@dataclass(frozen=True)
class ScanBuffer:
    """Channels recorded during a scan and the scan resolution."""
    channel_indexes: List[int]
    pixels: int
    lines: int


@dataclass
class BiasSpectrProps:
    """
    Arguments of BiasSpectr.PropsSet.

    Every field defaults to "no change", so only the fields set explicitly
    are modified on the instrument. For the numeric fields 0 means no change.
    """
    save_all: Toggle = Toggle.NO_CHANGE
    num_sweeps: int = 0
    backward_sweep: Toggle = Toggle.NO_CHANGE
    num_points: int = 0
    z_offset: float = 0.0
    autosave: Toggle = Toggle.NO_CHANGE
    show_save_dialog: Toggle = Toggle.NO_CHANGE


@dataclass
class BiasSpectrSettings:
    """Bias spectroscopy configuration as reported by BiasSpectr.PropsGet."""
    save_all: bool
    num_sweeps: int
    backward_sweep: bool
    num_points: int
    channels: List[str] = field(default_factory=list)
    parameters: List[str] = field(default_factory=list)
    fixed_parameters: List[str] = field(default_factory=list)
