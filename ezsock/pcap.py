"""Writing captured frames to a classic libpcap capture file."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, ClassVar, Optional, Union

PCAP_MAGIC = 0xA1B2C3D4
LINKTYPE_ETHERNET = 1

_FILE_HEADER = struct.Struct("<IHHIIII")
_RECORD_HEADER = struct.Struct("<IIII")


@dataclass(frozen=True)
class PcapFileHeader:
    """The 24-byte global header that opens every capture file."""

    magic_number: int = PCAP_MAGIC
    version_major: int = 2
    version_minor: int = 4
    thiszone: int = 0
    sigfigs: int = 0
    snaplen: int = 0xFFFF
    network: int = LINKTYPE_ETHERNET

    SIZE: ClassVar[int] = _FILE_HEADER.size

    def pack(self) -> bytes:
        return _FILE_HEADER.pack(
            self.magic_number,
            self.version_major,
            self.version_minor,
            self.thiszone,
            self.sigfigs,
            self.snaplen,
            self.network,
        )


@dataclass(frozen=True)
class PcapRecordHeader:
    """The 16-byte header in front of each captured packet."""

    ts_sec: int
    ts_usec: int
    caplen: int
    length: int

    SIZE: ClassVar[int] = _RECORD_HEADER.size

    def pack(self) -> bytes:
        return _RECORD_HEADER.pack(self.ts_sec, self.ts_usec, self.caplen, self.length)


class CaptureRecorder:
    """Appends packets to a capture file named after the time it was opened.

    The file is created on the first recorded packet, as
    ``www_<unix time>_<number>.pcap`` inside ``directory``.
    """

    def __init__(
        self,
        directory: Union[str, Path] = ".",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = Path(directory)
        self._clock = clock
        self._file: Optional[BinaryIO] = None
        self._next_file_number = 1
        self._closed = False
        self.path: Optional[Path] = None
        self.packets = 0
        self.bytes_recorded = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _open(self) -> BinaryIO:
        name = f"www_{int(self._clock())}_{self._next_file_number:03d}.pcap"
        path = self.directory / name
        handle = open(path, "ab")
        self._next_file_number += 1
        handle.write(PcapFileHeader().pack())
        self.path = path
        self._file = handle
        return handle

    def record(self, data: bytes) -> None:
        """Append one packet, stamped with the current clock time."""
        if self._closed:
            raise ValueError("capture recorder is closed")
        if not data:
            raise ValueError("cannot record an empty packet")
        handle = self._file if self._file is not None else self._open()
        seconds, microseconds = divmod(int(self._clock() * 1_000_000), 1_000_000)
        header = PcapRecordHeader(seconds, microseconds, len(data), len(data))
        handle.write(header.pack())
        handle.write(bytes(data))
        self.packets += 1
        self.bytes_recorded += len(data)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        self._closed = True

    def __enter__(self) -> CaptureRecorder:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()