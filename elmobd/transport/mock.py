"""
In-process ELM327 simulator used for demo mode and tests.

Answers like an ELM327 v1.5 attached to a petrol car on ISO 15765-4
(CAN 11/500 by default): AT directives, supported-PID bitmaps derived from
the simulated engine, batched mode 01 reads with real ISO-TP framing,
DTC reads/clears and a multi-frame VIN.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence, Set, Union

from ..elm.errors import AdapterConnectionError, DeviceDisconnectedError
from .base import DeviceInfo, Transport

logger = logging.getLogger(__name__)

DEMO_VIN = "1HGCM82633A004352"

# pid -> data bytes (no echo)
DEMO_ENGINE: Dict[int, bytes] = {
    0x01: bytes([0x00, 0x07, 0xE5, 0x00]),
    0x04: bytes([0x40]),
    0x05: bytes([0x7B]),
    0x06: bytes([0x80]),
    0x07: bytes([0x82]),
    0x0B: bytes([0x21]),
    0x0C: bytes([0x0D, 0x48]),
    0x0D: bytes([0x00]),
    0x0E: bytes([0x90]),
    0x0F: bytes([0x3C]),
    0x10: bytes([0x01, 0x2C]),
    0x11: bytes([0x26]),
    0x1C: bytes([0x01]),
    0x1F: bytes([0x01, 0x2C]),
    0x2F: bytes([0xB3]),
    0x33: bytes([0x65]),
    0x42: bytes([0x37, 0x78]),
    0x46: bytes([0x3C]),
    0x51: bytes([0x01]),
    0x5C: bytes([0x82]),
}

_CAN_IDS = {
    "6": ("7E8", 11),
    "8": ("7E8", 11),
    "7": ("18DAF110", 29),
    "9": ("18DAF110", 29),
    "A": ("18DAF110", 29),
}

Response = Union[str, Sequence[str]]


class MockTransport(Transport):
    kind = "demo"

    def __init__(
        self,
        *,
        protocol: str = "6",
        engine: Optional[Dict[int, bytes]] = None,
        dtcs: Sequence[bytes] = (),
        vin: str = DEMO_VIN,
        version: str = "ELM327 v1.5",
        fail_connect: bool = False,
        connect_delay_s: float = 0.0,
    ):
        super().__init__()
        self.protocol = protocol.upper()
        self.engine: Dict[int, bytes] = dict(DEMO_ENGINE if engine is None else engine)
        self.dtcs: List[bytes] = list(dtcs)
        self.vin = vin
        self.version = version
        self.fail_connect = fail_connect
        self.connect_delay_s = connect_delay_s

        self.responses: Dict[str, List[str]] = {}
        self.hang: Set[str] = set()
        # one-shot reply delays, command -> seconds
        self.late: Dict[str, float] = {}
        self.sent_commands: List[str] = []

        self.headers_on = True
        self.selected_protocol = "0"
        self._rx: "asyncio.Queue[bytes]" = asyncio.Queue()

    # -- scripting -------------------------------------------------------

    def set_response(self, command: str, lines: Response) -> None:
        key = _normalize(command)
        self.responses[key] = [lines] if isinstance(lines, str) else list(lines)

    def hang_on(self, command: str) -> None:
        self.hang.add(_normalize(command))

    def answer_late(self, command: str, delay_s: float) -> None:
        """Answer the next `command` only after `delay_s`."""
        self.late[_normalize(command)] = delay_s

    # -- Transport -------------------------------------------------------

    async def _open(self, target: Optional[str], timeout: float) -> None:
        if self.connect_delay_s:
            await asyncio.sleep(self.connect_delay_s)
        if self.fail_connect:
            raise AdapterConnectionError("Demo adapter refused the connection")
        self._rx = asyncio.Queue()

    async def _close(self) -> None:
        self._rx = asyncio.Queue()

    def discard_pending(self) -> None:
        super().discard_pending()
        while not self._rx.empty():
            self._rx.get_nowait()

    async def _write(self, data: bytes) -> None:
        if not self.is_connected:
            raise DeviceDisconnectedError("Demo adapter not connected", operation="write")
        command = _normalize(data.decode("ascii", errors="ignore"))
        self.sent_commands.append(command)
        if command in self.hang:
            logger.debug("demo adapter ignoring %s", command)
            return
        lines = self._answer(command)
        payload = ("\r".join(lines) + "\r\r>").encode("ascii")
        delay = self.late.pop(command, None)
        if delay:
            asyncio.get_running_loop().call_later(delay, self._deliver, self._rx, payload)
            return
        self._rx.put_nowait(payload)

    def _deliver(self, rx: "asyncio.Queue[bytes]", payload: bytes) -> None:
        # a reply meant for a closed session is lost with it
        if rx is self._rx and self.is_connected:
            rx.put_nowait(payload)

    async def _read_chunk(self) -> bytes:
        return await self._rx.get()

    async def discover_devices(self) -> AsyncIterator[DeviceInfo]:
        yield DeviceInfo(address="demo", name="Demo ELM327", kind=self.kind)

    # -- simulated adapter -----------------------------------------------

    def _answer(self, command: str) -> List[str]:
        if command in self.responses:
            return list(self.responses[command])
        if command.startswith("AT"):
            return self._answer_at(command)
        if self.selected_protocol not in ("0", self.protocol):
            return ["CAN ERROR"] if self.selected_protocol in _CAN_IDS else ["UNABLE TO CONNECT"]
        mode = command[:2]
        if mode == "01":
            return self._answer_mode01(command[2:])
        if mode == "03":
            return self._frame(bytes([0x43, len(self.dtcs)]) + b"".join(self.dtcs))
        if mode == "04":
            self.dtcs.clear()
            return self._frame(bytes([0x44]))
        if command == "0902":
            return self._frame(bytes([0x49, 0x02, 0x01]) + self.vin.encode("ascii"))
        if command == "0900":
            return self._frame(bytes([0x49, 0x00, 0x40, 0x00, 0x00, 0x00]))
        return ["NO DATA"]

    def _answer_at(self, command: str) -> List[str]:
        if command in ("ATZ", "ATWS", "ATI"):
            self.headers_on = False
            self.selected_protocol = "0"
            return [self.version]
        if command == "ATH1":
            self.headers_on = True
        elif command == "ATH0":
            self.headers_on = False
        elif command.startswith("ATSP"):
            self.selected_protocol = command[4:] or "0"
        elif command == "ATDPN":
            return [("A" if self.selected_protocol == "0" else "") + self.protocol]
        elif command == "ATRV":
            return ["12.6V"]
        return ["OK"]

    def _supported_bitmap(self, base: int) -> bytes:
        bits = 0
        for pid in self.engine:
            if base < pid <= base + 0x20:
                bits |= 1 << (32 - (pid - base))
        if any(pid > base + 0x20 for pid in self.engine):
            bits |= 1
        return bits.to_bytes(4, "big")

    def _answer_mode01(self, pids_hex: str) -> List[str]:
        out = bytearray([0x41])
        try:
            pids = bytes.fromhex(pids_hex)
        except ValueError:
            return ["?"]
        for pid in pids:
            if pid % 0x20 == 0:
                out += bytes([pid]) + self._supported_bitmap(pid)
            elif pid in self.engine:
                out += bytes([pid]) + self.engine[pid]
        if len(out) == 1:
            return ["NO DATA"]
        return self._frame(bytes(out))

    def _frame(self, payload: bytes) -> List[str]:
        """Render one ECU reply the way the adapter prints it."""
        arb_id, _ = _CAN_IDS.get(self.protocol, ("7E8", 11))
        if not self.headers_on:
            if len(payload) <= 7:
                return [_hex(payload)]
            lines = [f"{len(payload):03X}"]
            chunks = [payload[:6]] + [payload[i : i + 7] for i in range(6, len(payload), 7)]
            for n, chunk in enumerate(chunks):
                lines.append(f"{n & 0x0F:X}: {_hex(chunk)}")
            return lines

        prefix = arb_id if len(arb_id) == 3 else " ".join(arb_id[i : i + 2] for i in range(0, 8, 2))
        if len(payload) <= 7:
            return [f"{prefix} {len(payload):02X} {_hex(payload)}"]

        lines = [f"{prefix} 1{len(payload) >> 8:X} {len(payload) & 0xFF:02X} {_hex(payload[:6])}"]
        seq = 1
        for i in range(6, len(payload), 7):
            chunk = payload[i : i + 7].ljust(7, b"\x00")
            lines.append(f"{prefix} 2{seq:X} {_hex(chunk)}")
            seq = (seq + 1) & 0x0F
        return lines


def _normalize(command: str) -> str:
    return "".join((command or "").split()).upper()


def _hex(data: bytes) -> str:
    return " ".join(f"{b:02X}" for b in data)
