from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple

from ..elm.errors import DecodeError
from ..elm.protocol import OBDProtocol
from ..pids.batch import decode_message
from ..pids.catalog import get_commands
from ..protocol import is_valid_vin
from .models import OBDInfo

logger = logging.getLogger(__name__)

VOLTAGE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*V", re.IGNORECASE)


class VehicleInfoMixin:
    async def get_vin(self) -> Optional[str]:
        """Mode 09 PID 02; None when no ECU returns a valid 17 character VIN."""
        cmd = get_commands().VIN
        for msg in await self._query(cmd):
            try:
                text = decode_message(cmd, msg)
            except DecodeError as e:
                logger.debug("VIN from %s: %s", msg.ecu, e)
                continue
            vin = text.strip().upper()[-17:]
            if is_valid_vin(vin):
                return vin
            logger.debug("VIN from %s rejected: %r", msg.ecu, text)
        return None

    async def get_calibration_ids(self) -> Dict[str, str]:
        cmd = get_commands().CALIBRATION_ID
        out: Dict[str, str] = {}
        for msg in await self._query(cmd):
            try:
                out[msg.ecu] = decode_message(cmd, msg)
            except DecodeError as e:
                logger.debug("calibration id from %s: %s", msg.ecu, e)
        return out

    async def get_protocol_description(self) -> str:
        self._check_adapter()
        proto = await self.elm.get_protocol()
        if proto is None or proto is OBDProtocol.AUTO:
            proto = self.elm.protocol
        return proto.description if proto else "Unknown"

    async def get_adapter_voltage(self) -> Optional[float]:
        """Battery voltage at the OBD socket as measured by the adapter (ATRV)."""
        self._check_adapter()
        for ln in await self.elm.send("ATRV", retries=1, reset_on_failure=False):
            m = VOLTAGE_RE.search(ln)
            if m:
                return float(m.group(1))
        return None

    async def get_ecus(self) -> Tuple[str, ...]:
        """ECUs answering the 0100 probe, preferred first."""
        messages = await self._query(get_commands().PIDS_A)
        seen: List[str] = []
        for m in messages:
            if m.ecu not in seen:
                seen.append(m.ecu)
        return tuple(seen)

    async def _collect_info(self, protocol: OBDProtocol) -> OBDInfo:
        info = OBDInfo(protocol=protocol, elm_version=self.elm.elm_version)
        info.ecus = await self.get_ecus()
        info.supported_pids = await self.get_supported_pids()
        info.vin = await self.get_vin()
        return info
