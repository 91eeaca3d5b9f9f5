from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..dtc import DTCStatus, Status, TroubleCode
from ..elm.errors import DecodeError, OBDError
from ..pids.batch import decode_message
from ..pids.catalog import OBDCommand, get_commands
from .base import ClearFailedError, ScanFailedError

logger = logging.getLogger(__name__)


def _dtc_commands(status: DTCStatus) -> List[OBDCommand]:
    catalog = get_commands()
    out = []
    if status & DTCStatus.CONFIRMED:
        out.append(catalog.GET_DTC)
    if status & DTCStatus.PENDING:
        out.append(catalog.GET_PENDING_DTC)
    if status & DTCStatus.PERMANENT:
        out.append(catalog.GET_PERMANENT_DTC)
    return out


class DtcMixin:
    async def scan_trouble_codes(
        self,
        status: DTCStatus = DTCStatus.CONFIRMED,
    ) -> Dict[str, List[TroubleCode]]:
        """
        ECU -> trouble codes for the requested kinds, e.g.
        `DTCStatus.CONFIRMED | DTCStatus.PENDING`. An ECU that answered
        with no codes maps to an empty list.
        """
        found: Dict[str, List[TroubleCode]] = {}
        try:
            for cmd in _dtc_commands(status):
                for msg in await self._query(cmd):
                    try:
                        codes = decode_message(cmd, msg)
                    except DecodeError as e:
                        logger.warning("%s from %s undecodable: %s", cmd.command, msg.ecu, e)
                        continue
                    bucket = found.setdefault(msg.ecu, [])
                    bucket.extend(c for c in codes if c not in bucket)
        except OBDError as e:
            raise ScanFailedError("Trouble code scan failed", cause=e) from e
        return found

    async def clear_trouble_codes(self) -> List[str]:
        """Mode 04. Returns the ECUs that acknowledged the clear."""
        try:
            messages = await self._query(get_commands().CLEAR_DTC)
        except OBDError as e:
            raise ClearFailedError("Clearing trouble codes failed", cause=e) from e
        if not messages:
            raise ClearFailedError("No ECU acknowledged the clear request")
        ecus = [m.ecu for m in messages]
        logger.info("trouble codes cleared by %s", ", ".join(ecus))
        return ecus

    async def get_status(self) -> Status:
        """MIL, stored DTC count and readiness monitors (0101)."""
        return await self.request(get_commands().STATUS)

    async def get_freeze_frame_dtc(self) -> Optional[TroubleCode]:
        """The code that stored freeze frame 0 (0202), None when no frame is stored."""
        return await self.request(get_commands().DTC_FREEZE_DTC)
