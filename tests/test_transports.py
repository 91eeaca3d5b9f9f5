from __future__ import annotations

import asyncio
import threading
import unittest
from typing import Dict, Optional
from unittest import mock

from elmobd.elm import ELM327
from elmobd.elm.errors import AdapterConnectionError, CommandFailedError, DeviceDisconnectedError
from elmobd.state import ConnectionState
from elmobd.transport import TcpTransport, split_response
from elmobd.transport.serial import SerialTransport
from elmobd.transport.tcp import parse_target


class SplitResponseTests(unittest.TestCase):
    def test_prompt_and_blank_lines_removed(self) -> None:
        self.assertEqual(
            ["7E8 03 41 0D 32", "7E9 03 41 0D 30"],
            split_response("7E8 03 41 0D 32\r7E9 03 41 0D 30\r\r>"),
        )
        self.assertEqual([], split_response("\r\r>"))

    def test_target_parsing(self) -> None:
        self.assertEqual(("192.168.0.10", 35000), parse_target(None, "192.168.0.10", 35000))
        self.assertEqual(("10.0.0.2", 23), parse_target("10.0.0.2:23", "h", 1))
        self.assertEqual(("h", 23), parse_target(":23", "h", 1))
        self.assertEqual(("10.0.0.2", 1), parse_target("10.0.0.2", "h", 1))


class FakeWifiAdapter:
    """Tiny TCP ELM327: battery voltage for most commands, closes on ATPC."""

    def __init__(self, late: Optional[Dict[str, float]] = None) -> None:
        self.server = None
        self.received = []
        # command -> seconds the adapter sits on it before answering
        self.late = late or {}

    async def start(self) -> int:
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self.server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        server, self.server = self.server, None
        if server is not None:
            server.close()
            await server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            while True:
                data = await reader.readuntil(b"\r")
                command = data.decode().strip()
                self.received.append(command)
                if command == "ATPC":
                    break
                if command in self.late:
                    await asyncio.sleep(self.late[command])
                    writer.write(b"UNABLE TO CONNECT\r\r>")
                    await writer.drain()
                    continue
                # reply split across writes like a real adapter
                writer.write(b"12.")
                await writer.drain()
                writer.write(b"6V\r\r>")
                await writer.drain()
        except asyncio.IncompleteReadError:
            pass
        finally:
            writer.close()


class TcpTransportTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.adapter = FakeWifiAdapter()
        self.port = await self.adapter.start()

    async def asyncTearDown(self) -> None:
        await self.adapter.stop()

    async def test_round_trip(self) -> None:
        transport = TcpTransport("127.0.0.1", 1)
        elm = ELM327(transport, timeout=1.0, retry_delay_s=0.0)
        await elm.connect_to_adapter(f"127.0.0.1:{self.port}")
        self.assertEqual(["12.6V"], await elm.send("ATRV"))
        self.assertEqual(["ATRV"], self.adapter.received)
        await elm.stop_connection()
        self.assertIs(ConnectionState.DISCONNECTED, elm.state)

    async def test_socket_closed_by_adapter(self) -> None:
        transport = TcpTransport("127.0.0.1", self.port)
        elm = ELM327(transport, timeout=1.0, retry_delay_s=0.0)
        await elm.connect_to_adapter()
        with self.assertRaises(CommandFailedError) as ctx:
            await elm.send("ATPC")
        self.assertIsInstance(ctx.exception.cause, DeviceDisconnectedError)
        self.assertEqual(1, ctx.exception.attempts)
        self.assertIs(ConnectionState.DISCONNECTED, elm.state)

    async def test_unreachable_adapter(self) -> None:
        await self.adapter.stop()
        elm = ELM327(TcpTransport("127.0.0.1", self.port))
        with self.assertRaises(AdapterConnectionError):
            await elm.connect_to_adapter(timeout=1.0)


class LateReplyTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.adapter = FakeWifiAdapter(late={"0100": 0.3})
        self.port = await self.adapter.start()
        self.calls = []

    async def asyncTearDown(self) -> None:
        await self.adapter.stop()

    async def _connected(self, timeout: float) -> ELM327:
        elm = ELM327(
            TcpTransport("127.0.0.1", self.port),
            timeout=timeout,
            retry_delay_s=0.0,
            raw_logger=lambda d, c, ls: self.calls.append((d, c, ls)),
        )
        await elm.connect_to_adapter()
        return elm

    async def test_reply_already_waiting_is_not_read_as_next_answer(self) -> None:
        elm = await self._connected(timeout=0.1)
        with self.assertRaises(CommandFailedError):
            await elm.send("0100", retries=1, reset_on_failure=False)
        await asyncio.sleep(0.4)

        self.assertEqual(["12.6V"], await elm.send("ATRV"))
        self.assertEqual(["0100", "ATRV"], self.adapter.received)
        await elm.stop_connection()

    async def test_next_command_waits_for_late_reply(self) -> None:
        elm = await self._connected(timeout=0.2)
        with self.assertRaises(CommandFailedError):
            await elm.send("0100", retries=1, reset_on_failure=False)

        self.assertEqual(["12.6V"], await elm.send("ATRV"))
        self.assertIn(("RX", "(late reply)", ["UNABLE TO CONNECT"]), self.calls)
        self.assertEqual(["12.6V"], await elm.send("ATRV"))
        await elm.stop_connection()


class FakeSerialPort:
    def __init__(self, replies) -> None:
        self.replies = list(replies)
        self.pending = b""
        self.written = []
        self.closed = False
        self.writer_threads = []

    @property
    def in_waiting(self) -> int:
        return len(self.pending)

    def read(self, n: int) -> bytes:
        out, self.pending = self.pending[:n], self.pending[n:]
        return out

    def write(self, data: bytes) -> None:
        self.writer_threads.append(threading.get_ident())
        self.written.append(data)
        self.pending += self.replies.pop(0)

    def flush(self) -> None:
        pass

    def reset_input_buffer(self) -> None:
        self.pending = b""

    def close(self) -> None:
        self.closed = True


class SerialTransportTests(unittest.IsolatedAsyncioTestCase):
    async def test_round_trip_over_fake_port(self) -> None:
        port = FakeSerialPort([b"ELM327 v2.1\r\r>"])
        with mock.patch("elmobd.transport.serial.serial.Serial", return_value=port):
            transport = SerialTransport("/dev/ttyUSB0")
            elm = ELM327(transport, timeout=1.0)
            await elm.connect_to_adapter()
            self.assertEqual(["ELM327 v2.1"], await elm.send("ATZ"))
            await elm.stop_connection()
        self.assertEqual([b"ATZ\r"], port.written)
        self.assertTrue(port.closed)
        # blocking port I/O stays off the event loop thread
        self.assertNotIn(threading.get_ident(), port.writer_threads)

    async def test_no_port_found(self) -> None:
        with mock.patch("elmobd.transport.serial.list_ports.comports", return_value=[]):
            elm = ELM327(SerialTransport())
            with self.assertRaises(AdapterConnectionError):
                await elm.connect_to_adapter(timeout=1.0)


if __name__ == "__main__":
    unittest.main()
