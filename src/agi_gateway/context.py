"""Handler-facing session with AGI command builders.

Each method formats one AGI command and sends it through
``Session.send_command``. See the Asterisk AGI command reference for the
meaning of each ``response.result``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Literal

from .protocol import Response
from .session import Session

# A single DTMF key: 0-9, "*" or "#"
PhoneKey = int | str


def _digits(keys: Sequence[PhoneKey]) -> str:
    """Render escape digits the way AGI expects them: "1,2,#"."""
    return '"' + ",".join(str(key) for key in keys) + '"'


def _timestamp(moment: datetime) -> int:
    return round(moment.timestamp())


class Context(Session):
    """Session passed to middleware handlers.

    Usage:
        async def handler(ctx: Context, next):
            await ctx.answer()
            await ctx.stream_file("hello-world")
            await next()
    """

    async def answer(self) -> Response:
        """Answer the channel.

        response.result: "0" on success, "-1" on channel failure.
        """
        return await self.send_command("ANSWER")

    async def async_agi_break(self) -> Response:
        """Return control to the dialplan (Async AGI only)."""
        return await self.send_command("ASYNCAGI BREAK")

    async def channel_status(self, channel_name: str) -> Response:
        """Query the status of a channel.

        response.result:
            0  Channel is down and available
            1  Channel is down, but reserved
            2  Channel is off hook
            3  Digits (or equivalent) have been dialed
            4  Line is ringing
            5  Remote end is ringing
            6  Line is up
            7  Line is busy
        """
        return await self.send_command(f"CHANNEL STATUS {channel_name}")

    async def control_stream_file(
        self,
        filename: str,
        escape_digits: Sequence[PhoneKey] = (1, 2, 3, 4, 5, 6, 7, 8, 0),
        skip_ms: int = 3000,
        ff_char: PhoneKey = "#",
        rew_char: PhoneKey = "*",
        pause_char: PhoneKey | None = None,
        offset_ms: int | None = None,
    ) -> Response:
        """Play a file the caller can fast-forward, rewind and pause.

        Args:
            filename: File to play, without extension
            escape_digits: Keys that stop playback
            skip_ms: Milliseconds to skip on fast-forward/rewind
            ff_char: Fast-forward key
            rew_char: Rewind key
            pause_char: Pause key
            offset_ms: Start offset
        """
        command = (
            f"CONTROL STREAM FILE {filename} {_digits(escape_digits)} {skip_ms} {ff_char} {rew_char}"
        )
        if pause_char:
            command += f" {pause_char}"
        if offset_ms:
            command += f" {offset_ms}"
        return await self.send_command(command)

    async def database_del(self, family: str, key: str) -> Response:
        """Delete an AstDB entry. response.result: "1" on success, "0" otherwise."""
        return await self.send_command(f"DATABASE DEL {family} {key}")

    async def database_del_tree(self, family: str, key_tree: str) -> Response:
        """Delete a family or key tree from AstDB."""
        return await self.send_command(f"DATABASE DELTREE {family} {key_tree}")

    async def database_get(self, family: str, key: str) -> Response:
        """Read an AstDB entry.

        response.result is "1" when the key is set, with the value in
        response.value; "0" otherwise.
        """
        return await self.send_command(f"DATABASE GET {family} {key}")

    async def database_put(self, family: str, key: str, value: str) -> Response:
        """Add or update an AstDB entry."""
        return await self.send_command(f"DATABASE PUT {family} {key} {value}")

    async def exec(self, application: str, *options: str) -> Response:
        """Run a dialplan application.

        Returns whatever the application returns, or -2 when it is not found.
        """
        return await self.send_command(f"EXEC {application} {','.join(options)}")

    async def get_data(self, file: str, timeout: int, max_digits: int) -> Response:
        """Play a file and collect DTMF digits."""
        return await self.send_command(f"GET DATA {file} {timeout} {max_digits}")

    async def get_full_variable(self, name: str, channel_name: str = "") -> Response:
        return await self.send_command(f"GET FULL VARIABLE {name} {channel_name}")

    async def get_option(
        self,
        filename: str,
        escape_digits: Sequence[PhoneKey] = (),
        timeout: int = 5000,
    ) -> Response:
        """Like stream_file, but waits ``timeout`` ms for a key after playback."""
        return await self.send_command(f"GET OPTION {filename} {_digits(escape_digits)} {timeout}")

    async def get_variable(self, name: str) -> Response:
        return await self.send_command(f"GET VARIABLE {name}")

    async def go_sub(
        self, context: str, extension: str, priority: str, opt_arg: str = ""
    ) -> Response:
        return await self.send_command(f"GOSUB {context} {extension} {priority} {opt_arg}")

    async def hangup(self, channel_name: str | None = None) -> Response:
        """Hang up the current channel, or the named one."""
        if channel_name:
            return await self.send_command(f"HANGUP {channel_name}")
        return await self.send_command("HANGUP")

    async def noop(self) -> Response:
        return await self.send_command("NOOP")

    async def receive_char(self, timeout: int) -> Response:
        return await self.send_command(f"RECEIVE CHAR {timeout}")

    async def receive_text(self, timeout: int) -> Response:
        return await self.send_command(f"RECEIVE TEXT {timeout}")

    async def record_file(
        self,
        file: str,
        format: str = "wav",
        escape_digits: Sequence[PhoneKey] = (),
        timeout: int = -1,
        offset_samples: int = 0,
        beep: bool = False,
        silence: int | None = None,
    ) -> Response:
        """Record audio to a file.

        Args:
            file: Target file, without extension
            format: Audio format
            escape_digits: Keys that stop the recording
            timeout: Maximum duration in ms, -1 for none
            offset_samples: Samples to skip before recording
            beep: Play a beep first
            silence: Stop after this many seconds of silence
        """
        command = (
            f'RECORD FILE "{file}" {format} {_digits(escape_digits)} {timeout} {offset_samples}'
        )
        if beep:
            command += " 1"
        if silence:
            command += f" s={silence}"
        return await self.send_command(command)

    async def say_alpha(self, data: str, escape_digits: Sequence[PhoneKey] = ()) -> Response:
        return await self.send_command(f"SAY ALPHA {data} {_digits(escape_digits)}")

    async def say_date(
        self, date: datetime, escape_digits: Sequence[PhoneKey] = ()
    ) -> Response:
        return await self.send_command(f"SAY DATE {_timestamp(date)} {_digits(escape_digits)}")

    async def say_date_time(
        self,
        date: datetime,
        escape_digits: Sequence[PhoneKey] = (),
        format: str | None = None,
        timezone: str | None = None,
    ) -> Response:
        command = f"SAY DATETIME {_timestamp(date)} {_digits(escape_digits)}"
        if format:
            command += f" {format}"
        if timezone:
            command += f" {timezone}"
        return await self.send_command(command)

    async def say_digits(self, data: int, escape_digits: Sequence[PhoneKey] = ()) -> Response:
        return await self.send_command(f"SAY DIGITS {data} {_digits(escape_digits)}")

    async def say_number(
        self,
        data: int,
        escape_digits: Sequence[PhoneKey] = (),
        gender: str | None = None,
    ) -> Response:
        command = f"SAY NUMBER {data} {_digits(escape_digits)}"
        if gender:
            command += f" {gender}"
        return await self.send_command(command)

    async def say_phonetic(
        self, data: str, escape_digits: Sequence[PhoneKey] = ()
    ) -> Response:
        return await self.send_command(f'SAY PHONETIC "{data}" {_digits(escape_digits)}')

    async def say_time(
        self, date: datetime, escape_digits: Sequence[PhoneKey] = ()
    ) -> Response:
        return await self.send_command(f"SAY TIME {_timestamp(date)} {_digits(escape_digits)}")

    async def send_image(self, name: str) -> Response:
        return await self.send_command(f"SEND IMAGE {name}")

    async def send_text(self, text: str) -> Response:
        return await self.send_command(f'SEND TEXT "{text}"')

    async def set_auto_hangup(self, time: int) -> Response:
        """Hang up automatically after ``time`` seconds (0 disables)."""
        return await self.send_command(f"SET AUTOHANGUP {time}")

    async def set_caller_id(self, caller_id: str) -> Response:
        return await self.send_command(f"SET CALLERID {caller_id}")

    async def set_context(self, context: str) -> Response:
        return await self.send_command(f"SET CONTEXT {context}")

    async def set_extension(self, extension: str) -> Response:
        return await self.send_command(f"SET EXTENSION {extension}")

    async def set_music(
        self, mode: Literal["on", "off"], class_name: str = "default"
    ) -> Response:
        """Enable or disable music on hold."""
        return await self.send_command(f"SET MUSIC {mode} {class_name}")

    async def set_priority(self, priority: str) -> Response:
        return await self.send_command(f"SET PRIORITY {priority}")

    async def set_variable(self, name: str, value: str) -> Response:
        return await self.send_command(f'SET VARIABLE {name} "{value}"')

    async def stream_file(
        self,
        filename: str,
        escape_digits: Sequence[PhoneKey] = (),
        offset_ms: int | None = None,
    ) -> Response:
        """Play a file; any of ``escape_digits`` interrupts playback."""
        command = f'STREAM FILE "{filename}" {_digits(escape_digits)}'
        if offset_ms:
            command += f" {offset_ms}"
        return await self.send_command(command)

    async def verbose(
        self, message: str, level: Literal[1, 2, 3, 4] | None = None
    ) -> Response:
        """Log a message to the Asterisk verbose log."""
        command = f'VERBOSE "{message}"'
        if level:
            command += f" {level}"
        return await self.send_command(command)

    async def wait_for_digit(self, timeout: int = 10000) -> Response:
        """Wait up to ``timeout`` ms for a DTMF key, -1 to wait forever."""
        return await self.send_command(f"WAIT FOR DIGIT {timeout}")

    async def dial(self, target: str, timeout: int, params: str) -> Response:
        """Dial ``target`` through the Dial application."""
        return await self.exec("Dial", f"{target},{timeout}", params)
