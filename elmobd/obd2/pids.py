# elmobd/obd2/pids.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set

from ..elm.errors import DecodeError
from ..pids.batch import PIDResults, build_request, chunked, extract_from_messages
from ..pids.catalog import OBDCommand, get_commands
from ..pids.decoders import DecodeRule
from ..pids.units import MeasurementSystem

logger = logging.getLogger(__name__)


class PidMixin:
    """
    Mode 01 reads over the base query engine.

    Expects parent class to provide:
      - elm (ELM327), system, _check_connected(), _order_by_ecu(), request()
    """

    pid_retries = 3

    async def request_pids(
        self,
        cmds: Iterable[OBDCommand],
        *,
        system: Optional[MeasurementSystem] = None,
    ) -> PIDResults:
        """
        Read several PIDs; mode 01 fixed-width PIDs go out six per request,
        anything else is read on its own. Per-PID failures land in
        `results.errors`.
        """
        self._check_connected()
        system = system or self.system

        ordered: List[OBDCommand] = []
        for cmd in cmds:
            if cmd not in ordered:
                ordered.append(cmd)

        batchable = [c for c in ordered if c.mode == "01" and c.bytes > 0]
        singles = [c for c in ordered if c not in batchable]
        results = PIDResults()

        for chunk in chunked(batchable):
            request = build_request(chunk)
            lines = await self.elm.send(request, self.pid_retries)
            messages = [m for m in self.elm.parse(lines) if m.mode == 0x41]
            part = extract_from_messages(chunk, self._order_by_ecu(messages), system)
            for cmd, err in part.errors.items():
                logger.debug("%s: %s", cmd.name, err)
            results.merge(part)

        for cmd in singles:
            try:
                results[cmd] = await self.request(cmd, system=system)
            except DecodeError as e:
                results.errors[cmd] = e
        return results

    async def get_supported_pids(self) -> List[OBDCommand]:
        """
        Walk the 0100 / 0120 / 0140 bitmaps while each one advertises
        the next, and return the catalog entries they mark as supported.
        """
        self._check_connected()
        catalog = get_commands()
        getters = [c for c in catalog.by_mode("01") if c.decoder.rule is DecodeRule.PID]
        supported: Set[int] = set()

        for getter in getters:
            try:
                offsets = await self.request(getter)
            except DecodeError as e:
                logger.debug("%s unanswered: %s", getter.command, e)
                break
            supported.update(getter.pid + off for off in offsets)
            if 32 not in offsets:
                break

        return [
            c for c in catalog.by_mode("01")
            if c.pid in supported and c.decoder.rule is not DecodeRule.PID
        ]
