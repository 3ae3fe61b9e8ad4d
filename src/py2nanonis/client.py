"""
High-level client for the Nanonis TCP Programming Interface.

NanonisClient owns one Connection and exposes quick_send(), the generic
entry point every command wrapper goes through, plus wrappers for a
selection of Util, Bias, Scan and BiasSpectr commands.
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from .core.codec import CodeLike
from .core.sentinels import Toggle, ToggleEncoding, toggle_to_wire, toggle_from_wire
from .core.tcp_connection import Connection, connect
from .core.type_codes import TypeCode
from .core.values import NanonisValue
from .models.connection import ConnectionConfig, ClientSettings
from .models.instrument import (
    ScanAction, ScanDirection, VersionInfo, ScanFrame, ScanBuffer,
    BiasSpectrProps, BiasSpectrSettings
)


class NanonisClient:
    """
    Client for one Nanonis TCP Programming Interface port.

    Not thread-safe; see utils.shared_client.SharedClient.

    Example:
        >>> with NanonisClient("127.0.0.1", 6501) as client:
        ...     print(client.util_version_get())
        ...     client.bias_set(0.5)
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        config: Optional[ConnectionConfig] = None,
        connection: Optional[Connection] = None
    ):
        """
        Connect to the Nanonis software, or wrap an existing connection.

        Args:
            host: Host name or IP address of the Nanonis PC
            port: TCP Programming Interface port (e.g. 6501)
            config: Timeouts and framing options
            connection: Already open Connection to use instead of host/port

        Raises:
            ConnectionError: If the connection cannot be established
            InvalidArgumentError: If neither host/port nor connection is given
        """
        self.logger = logging.getLogger(__name__)
        if connection is None:
            connection = connect(host, port, config)
        self.connection = connection

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "NanonisClient":
        """Connect using a ClientSettings (e.g. from load_settings())."""
        return cls(settings.host, settings.port, settings.config)

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> "NanonisClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ========== Generic ==========

    def quick_send(
        self,
        command: str,
        args: Sequence[Any],
        arg_codes: Sequence[CodeLike],
        result_codes: Sequence[CodeLike],
        await_response: Optional[bool] = None
    ) -> List[NanonisValue]:
        """
        Send a command and return its decoded results.

        Args:
            command: Command name as in the Nanonis TCP protocol documentation
            args: Ordered arguments (NanonisValue or native values)
            arg_codes: Type codes of the arguments (TypeCode or vendor string)
            result_codes: Type codes of the results; empty for commands
                without results
            await_response: Force waiting for a reply on commands without
                results, so that errors reported by the software surface

        Returns:
            One NanonisValue per result code

        Raises:
            NanonisError: Any subclass; see Connection.transact
        """
        self.logger.debug(f"quick_send {command} args={list(args)}")
        return self.connection.transact(command, args, arg_codes, result_codes, await_response)

    # ========== Util ==========

    def util_version_get(self) -> VersionInfo:
        """Return the product line, version and release numbers."""
        result = self.quick_send("Util.VersionGet", [], [], ["+*c", "+*c", "I", "I"])
        return VersionInfo(
            product_line=result[0].as_string(),
            version=result[1].as_string(),
            host_app_release=result[2].as_u32(),
            rt_engine_release=result[3].as_u32(),
        )

    def util_session_path_get(self) -> str:
        """Return the path of the current session folder."""
        result = self.quick_send("Util.SessionPathGet", [], [], ["i", "*-c"])
        return result[1].as_string()

    # ========== Bias ==========

    def bias_get(self) -> float:
        """Return the tip bias in volts."""
        return self.quick_send("Bias.Get", [], [], ["f"])[0].as_f32()

    def bias_set(self, bias: float) -> None:
        """Set the tip bias in volts."""
        self.quick_send("Bias.Set", [NanonisValue.f32(bias)], ["f"], [], await_response=True)

    # ========== Scan ==========

    def scan_action(self, action: ScanAction, direction: ScanDirection = ScanDirection.UP) -> None:
        """Start, stop, pause, resume, freeze, unfreeze or center the scan."""
        self.quick_send(
            "Scan.Action",
            [NanonisValue.u16(action.value), NanonisValue.u32(direction.value)],
            ["H", "I"],
            [],
            await_response=True
        )

    def scan_status_get(self) -> bool:
        """Return True while a scan is running."""
        return self.quick_send("Scan.StatusGet", [], [], ["I"])[0].as_u32() == 1

    def scan_frame_get(self) -> ScanFrame:
        result = self.quick_send("Scan.FrameGet", [], [], ["f", "f", "f", "f", "f"])
        center_x, center_y, width, height, angle = (value.as_f32() for value in result)
        return ScanFrame(center_x, center_y, width, height, angle)

    def scan_frame_set(self, frame: ScanFrame) -> None:
        self.quick_send(
            "Scan.FrameSet",
            [frame.center_x, frame.center_y, frame.width, frame.height, frame.angle],
            ["f", "f", "f", "f", "f"],
            [],
            await_response=True
        )

    def scan_buffer_get(self) -> ScanBuffer:
        """Return the recorded channel indexes and the pixels/lines per frame."""
        result = self.quick_send("Scan.BufferGet", [], [], ["i", "*i", "i", "i"])
        return ScanBuffer(
            channel_indexes=result[1].as_i32_array(),
            pixels=result[2].as_i32(),
            lines=result[3].as_i32(),
        )

    def scan_buffer_set(self, buffer: ScanBuffer) -> None:
        self.quick_send(
            "Scan.BufferSet",
            [NanonisValue.array_i32(buffer.channel_indexes), buffer.pixels, buffer.lines],
            ["+*i", "i", "i"],
            [],
            await_response=True
        )

    def scan_frame_data_grab(self, channel_index: int, forward: bool = True) -> Tuple[str, np.ndarray, bool]:
        """
        Grab the data of one channel from the last (or current) scan frame.

        Args:
            channel_index: Index of the channel in the scan buffer
            forward: True for the forward scan, False for backward

        Returns:
            Tuple of (channel_name, data[lines, pixels], scan_direction_up)
        """
        result = self.quick_send(
            "Scan.FrameDataGrab",
            [NanonisValue.u32(channel_index), NanonisValue.u32(1 if forward else 0)],
            ["I", "I"],
            [TypeCode.I32, TypeCode.STRING_SIZED, TypeCode.I32, TypeCode.I32,
             TypeCode.ARRAY_2D_F32_SIZED, TypeCode.U32],
        )
        return result[1].as_string(), result[4].as_f32_2d_array(), result[5].as_u32() == 1

    # ========== BiasSpectr ==========

    def bias_spectr_props_set(self, props: BiasSpectrProps) -> None:
        """
        Configure bias spectroscopy; fields left at NO_CHANGE are not modified.
        """
        flag = ToggleEncoding.NO_CHANGE_ON_OFF
        self.quick_send(
            "BiasSpectr.PropsSet",
            [
                toggle_to_wire(props.save_all, flag),
                props.num_sweeps,
                toggle_to_wire(props.backward_sweep, flag),
                props.num_points,
                props.z_offset,
                toggle_to_wire(props.autosave, flag),
                toggle_to_wire(props.show_save_dialog, flag),
            ],
            ["H", "i", "H", "i", "f", "H", "H"],
            [],
            await_response=True
        )

    def bias_spectr_props_get(self) -> BiasSpectrSettings:
        result = self.quick_send(
            "BiasSpectr.PropsGet",
            [],
            [],
            ["H", "i", "H", "i", "i", "i", "*+c", "i", "i", "*+c", "i", "i", "*+c"],
        )
        return BiasSpectrSettings(
            save_all=toggle_from_wire(result[0].as_u16()) is Toggle.ON,
            num_sweeps=result[1].as_i32(),
            backward_sweep=toggle_from_wire(result[2].as_u16()) is Toggle.ON,
            num_points=result[3].as_i32(),
            channels=result[6].as_string_array(),
            parameters=result[9].as_string_array(),
            fixed_parameters=result[12].as_string_array(),
        )
