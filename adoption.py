# adoption.py
import sys
import time
import socket
import asyncio
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from enum import Enum
from typing import Callable, List, Mapping, Optional

import paramiko

from device import Device
from errors import AdoptionError, AuthenticationFailed, ConnectionFailed, ProtocolError
from progress import DEFAULT_IDLE, DEFAULT_WINDOW, ProgressChannel, pump
from utils import split_partial_escape, strip_ansi_codes

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TEMPLATE = "set-inform {controller_url}/inform"
READ_SIZE = 4096


class SessionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    SHELL_STARTING = "shell_starting"
    AWAITING_PROMPT = "awaiting_prompt"
    COMMAND_SENT = "command_sent"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


def extract_prompt(text: str, marker: str = "#") -> Optional[str]:
    """Returns the last trimmed line ending with the prompt marker, if any."""
    prompts = [line.strip() for line in text.splitlines() if line.strip().endswith(marker)]
    return prompts[-1] if prompts else None


class AdoptionSession:
    """Drives one device through the set-inform handshake over an SSH shell.

    All methods block; run the session on a worker thread. Cleaned output is
    accumulated in ``transcript``, echoed to stdout and offered to the
    optional progress channel as it arrives.
    """

    def __init__(self, ip: str, username: str, password: str, controller_url: str,
                 config: Optional[Mapping] = None, progress: Optional[ProgressChannel] = None,
                 port: int = 22):
        config = config or {}
        self.ip = ip
        self.port = port
        self.username = username
        self.password = password
        self.controller_url = controller_url.rstrip("/")
        self.progress = progress

        self.connect_timeout = config.get("connect_timeout", 10)
        self.read_timeout = config.get("read_timeout", 30)
        self.shell_settle = config.get("shell_settle", 1.0)
        self.read_settle = config.get("read_settle", 0.5)
        self.command_settle = config.get("command_settle", 0.5)
        self.poll_interval = config.get("poll_interval", 0.1)
        self.drain_timeout = config.get("drain_timeout", 5.0)
        self.close_timeout = config.get("close_timeout", 2.0)
        self.prompt_marker = config.get("prompt_marker", "#")
        self.command_template = config.get("command_template", DEFAULT_COMMAND_TEMPLATE)
        self.echo = config.get("echo", True)

        self.state = SessionState.CONNECTING
        self.transcript = ""
        self._partial = ""

    @property
    def command(self) -> str:
        return self.command_template.format(controller_url=self.controller_url) + "\n"

    def run(self) -> str:
        """Runs the whole session.

        Returns:
            The cleaned transcript.

        Raises:
            AdoptionError: A subclass naming the failed stage, carrying the
                transcript captured so far.
        """
        self._emit(f"{self.username}@{self.ip}\n")
        sock = None
        transport = None
        try:
            sock = self._connect()
            transport = self._authenticate(sock)
            channel = self._start_shell(transport)
            self._await_prompt(channel)
            self._send_command(channel)
            self._drain(channel)
            self._finish(channel)
        except AdoptionError as err:
            self.state = SessionState.FAILED
            logger.error(f"Adoption of {self.ip} failed: {err}")
            raise
        finally:
            if transport is not None:
                transport.close()
            elif sock is not None:
                sock.close()

        self.state = SessionState.DONE
        return self.transcript

    def _emit(self, text: str):
        cleaned = strip_ansi_codes(text)
        if not cleaned:
            return
        if self.echo:
            sys.stdout.write(cleaned)
            sys.stdout.flush()
        self.transcript += cleaned
        if self.progress is not None:
            # A closed or departed consumer is not an error for the session.
            self.progress.send(cleaned)

    def _error(self, error_cls, message: str) -> AdoptionError:
        return error_cls(message, transcript=self.transcript)

    def _connect(self) -> socket.socket:
        self.state = SessionState.CONNECTING
        try:
            sock = socket.create_connection((self.ip, self.port), timeout=self.connect_timeout)
        except OSError as e:
            raise self._error(ConnectionFailed, f"Connection failed: {e}")
        return sock

    def _authenticate(self, sock: socket.socket) -> paramiko.Transport:
        self.state = SessionState.AUTHENTICATING
        try:
            transport = paramiko.Transport(sock)
        except (OSError, paramiko.SSHException) as e:
            raise self._error(AuthenticationFailed, f"Failed to create session: {e}")
        # The transport reader thread owns the socket; bound each stage instead.
        transport.banner_timeout = self.read_timeout
        transport.auth_timeout = self.read_timeout

        try:
            transport.start_client(timeout=self.read_timeout)
        except (OSError, EOFError, paramiko.SSHException) as e:
            transport.close()
            raise self._error(AuthenticationFailed, f"SSH handshake failed: {e}")

        try:
            transport.auth_password(self.username, self.password)
        except (OSError, EOFError, paramiko.SSHException) as e:
            transport.close()
            raise self._error(AuthenticationFailed, f"Authentication failed: {e}")

        if not transport.is_authenticated():
            transport.close()
            raise self._error(AuthenticationFailed, "Authentication failed: Invalid credentials")
        return transport

    def _start_shell(self, transport: paramiko.Transport) -> paramiko.Channel:
        self.state = SessionState.SHELL_STARTING
        try:
            channel = transport.open_session(timeout=self.read_timeout)
        except (OSError, paramiko.SSHException) as e:
            raise self._error(ProtocolError, f"Failed to open channel: {e}")

        try:
            channel.get_pty(term="xterm")
        except (OSError, paramiko.SSHException) as e:
            raise self._error(ProtocolError, f"Failed to request PTY: {e}")

        try:
            channel.invoke_shell()
        except (OSError, paramiko.SSHException) as e:
            raise self._error(ProtocolError, f"Failed to start shell: {e}")
        channel.settimeout(self.read_timeout)
        return channel

    def _read_available(self, channel: paramiko.Channel) -> str:
        if not channel.recv_ready():
            return ""
        return channel.recv(READ_SIZE).decode("utf-8", errors="replace")

    def _await_prompt(self, channel: paramiko.Channel):
        self.state = SessionState.AWAITING_PROMPT
        time.sleep(self.shell_settle)
        time.sleep(self.read_settle)

        try:
            banner = self._read_available(channel)
        except (OSError, paramiko.SSHException) as e:
            logger.debug(f"No banner read from {self.ip}: {e}")
            return

        banner, self._partial = split_partial_escape(banner)
        prompt = extract_prompt(strip_ansi_codes(banner), self.prompt_marker)
        if prompt:
            self._emit(prompt + "\n")
        else:
            logger.debug(f"No prompt found in banner from {self.ip}")

    def _send_command(self, channel: paramiko.Channel):
        self.state = SessionState.COMMAND_SENT
        try:
            channel.sendall(self.command.encode("utf-8"))
        except (OSError, paramiko.SSHException) as e:
            raise self._error(ProtocolError, f"Failed to send command: {e}")
        time.sleep(self.command_settle)

    def _drain(self, channel: paramiko.Channel):
        self.state = SessionState.DRAINING
        deadline = time.monotonic() + self.drain_timeout
        while time.monotonic() < deadline:
            try:
                chunk = self._read_available(channel)
            except (OSError, paramiko.SSHException) as e:
                raise self._error(ProtocolError, f"Channel failed while reading output: {e}")
            if chunk:
                # Hold back an escape sequence split across reads.
                complete, self._partial = split_partial_escape(self._partial + chunk)
                self._emit(complete)
            elif channel.eof_received:
                logger.debug(f"Remote end of stream from {self.ip}")
                return
            time.sleep(self.poll_interval)
        logger.debug(f"Drain ceiling of {self.drain_timeout}s reached for {self.ip}")

    def _finish(self, channel: paramiko.Channel):
        try:
            channel.shutdown_write()
            deadline = time.monotonic() + self.close_timeout
            while not channel.eof_received and time.monotonic() < deadline:
                time.sleep(self.poll_interval)
            channel.close()
        except (OSError, paramiko.SSHException) as e:
            logger.debug(f"Error while closing channel to {self.ip}: {e}")


async def adopt_device(device: Device, username: str, password: str, controller_url: str,
                       config: Optional[Mapping] = None, progress: Optional[ProgressChannel] = None,
                       executor: Optional[Executor] = None) -> Device:
    """Adopts one device, recording the status transitions on the record.

    The blocking session runs on ``executor`` (the loop's default pool when
    None). Failures end in ``DeviceStatus.ERROR`` with the partial transcript
    followed by the error message.
    """
    device.begin_adoption()
    session = AdoptionSession(device.ip, username, password, controller_url,
                              config=config, progress=progress)
    loop = asyncio.get_running_loop()
    try:
        transcript = await loop.run_in_executor(executor, session.run)
    except AdoptionError as err:
        device.finish(err.full_transcript(), ok=False)
    except Exception as err:
        logger.exception(f"Unexpected failure adopting {device.ip}")
        device.finish(f"{session.transcript}\n{err}", ok=False)
    else:
        logger.info(f"Adoption of {device.ip} completed")
        device.finish(transcript, ok=True)
    finally:
        if progress is not None:
            progress.close()
    return device


async def adopt_devices(devices: List[Device], username: str, password: str, controller_url: str,
                        config: Optional[Mapping] = None,
                        on_progress: Optional[Callable[[Device, str], None]] = None,
                        progress_config: Optional[Mapping] = None) -> List[Device]:
    """Adopts every selected device in parallel, one worker thread each.

    When ``on_progress`` is given, each device gets its own progress channel
    and the callback receives that device's batched output.
    """
    selected = [device for device in devices if device.selected]
    if not selected:
        logger.info("No devices selected for adoption")
        return []

    progress_config = progress_config or {}
    window = progress_config.get("window", DEFAULT_WINDOW)
    idle = progress_config.get("idle", DEFAULT_IDLE)

    for device in selected:
        device.begin_adoption()

    logger.info(f"Adopting {len(selected)} devices")
    with ThreadPoolExecutor(max_workers=len(selected), thread_name_prefix="adopt") as executor:
        adoptions = []
        pumps = []
        for device in selected:
            channel = None
            if on_progress is not None:
                channel = ProgressChannel()
                pumps.append(pump(channel, lambda batch, d=device: on_progress(d, batch), window, idle))
            adoptions.append(adopt_device(device, username, password, controller_url,
                                          config=config, progress=channel, executor=executor))
        # One failing unit must not cancel its siblings.
        results = await asyncio.gather(*adoptions, *pumps, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"Adoption task failed: {result!r}")
    return selected
