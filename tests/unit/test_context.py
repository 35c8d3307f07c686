"""Unit tests for the Context command builders."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from agi_gateway import Response

MOMENT = datetime(2020, 1, 1, 12, 0, tzinfo=timezone.utc)
STAMP = 1577880000


async def sent_by(make_context, call) -> str:
    """Run one builder against a fresh context and return the line it wrote."""
    ctx, writer = await make_context()
    task = asyncio.create_task(call(ctx))
    await asyncio.sleep(0)

    sent = writer.sent
    ctx.feed("200 result=0\n")
    assert await task == Response(code=200, result="0")
    return sent


# =============================================================================
# Command lines
# =============================================================================


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("call", "expected"),
    [
        pytest.param(lambda ctx: ctx.answer(), "ANSWER\n", id="answer"),
        pytest.param(lambda ctx: ctx.async_agi_break(), "ASYNCAGI BREAK\n", id="async_agi_break"),
        pytest.param(
            lambda ctx: ctx.channel_status("test"), "CHANNEL STATUS test\n", id="channel_status"
        ),
        pytest.param(
            lambda ctx: ctx.database_del("family", "test"),
            "DATABASE DEL family test\n",
            id="database_del",
        ),
        pytest.param(
            lambda ctx: ctx.database_del_tree("family", "test"),
            "DATABASE DELTREE family test\n",
            id="database_del_tree",
        ),
        pytest.param(
            lambda ctx: ctx.database_get("family", "test"),
            "DATABASE GET family test\n",
            id="database_get",
        ),
        pytest.param(
            lambda ctx: ctx.database_put("family", "test", "value"),
            "DATABASE PUT family test value\n",
            id="database_put",
        ),
        pytest.param(
            lambda ctx: ctx.exec("test", "bang", "another"),
            "EXEC test bang,another\n",
            id="exec",
        ),
        pytest.param(
            lambda ctx: ctx.get_data("test", 10, 5), "GET DATA test 10 5\n", id="get_data"
        ),
        pytest.param(
            lambda ctx: ctx.get_full_variable("test", "test"),
            "GET FULL VARIABLE test test\n",
            id="get_full_variable",
        ),
        pytest.param(
            lambda ctx: ctx.get_option("test", ["1", "2"], 10),
            'GET OPTION test "1,2" 10\n',
            id="get_option",
        ),
        pytest.param(
            lambda ctx: ctx.get_variable("test"), "GET VARIABLE test\n", id="get_variable"
        ),
        pytest.param(
            lambda ctx: ctx.go_sub("out", "241", "6", "do"),
            "GOSUB out 241 6 do\n",
            id="go_sub",
        ),
        pytest.param(lambda ctx: ctx.hangup(), "HANGUP\n", id="hangup"),
        pytest.param(
            lambda ctx: ctx.hangup("SIP/100-0001"), "HANGUP SIP/100-0001\n", id="hangup_channel"
        ),
        pytest.param(lambda ctx: ctx.noop(), "NOOP\n", id="noop"),
        pytest.param(lambda ctx: ctx.receive_char(5), "RECEIVE CHAR 5\n", id="receive_char"),
        pytest.param(lambda ctx: ctx.receive_text(5), "RECEIVE TEXT 5\n", id="receive_text"),
        pytest.param(
            lambda ctx: ctx.say_alpha("test", ["1", "2"]),
            'SAY ALPHA test "1,2"\n',
            id="say_alpha",
        ),
        pytest.param(
            lambda ctx: ctx.say_date(MOMENT, [1, 2]),
            f'SAY DATE {STAMP} "1,2"\n',
            id="say_date",
        ),
        pytest.param(
            lambda ctx: ctx.say_date_time(MOMENT, [1], "ABdY", "UTC"),
            f'SAY DATETIME {STAMP} "1" ABdY UTC\n',
            id="say_date_time",
        ),
        pytest.param(
            lambda ctx: ctx.say_digits(123, ["#"]),
            'SAY DIGITS 123 "#"\n',
            id="say_digits",
        ),
        pytest.param(
            lambda ctx: ctx.say_number(1234, ["1", "2"], "f"),
            'SAY NUMBER 1234 "1,2" f\n',
            id="say_number",
        ),
        pytest.param(
            lambda ctx: ctx.say_phonetic("test", ["1", "2"]),
            'SAY PHONETIC "test" "1,2"\n',
            id="say_phonetic",
        ),
        pytest.param(
            lambda ctx: ctx.say_time(MOMENT), f'SAY TIME {STAMP} ""\n', id="say_time"
        ),
        pytest.param(lambda ctx: ctx.send_image("logo"), "SEND IMAGE logo\n", id="send_image"),
        pytest.param(
            lambda ctx: ctx.send_text("hello world"), 'SEND TEXT "hello world"\n', id="send_text"
        ),
        pytest.param(
            lambda ctx: ctx.set_auto_hangup(10), "SET AUTOHANGUP 10\n", id="set_auto_hangup"
        ),
        pytest.param(
            lambda ctx: ctx.set_caller_id("246"), "SET CALLERID 246\n", id="set_caller_id"
        ),
        pytest.param(
            lambda ctx: ctx.set_context("outbound"), "SET CONTEXT outbound\n", id="set_context"
        ),
        pytest.param(
            lambda ctx: ctx.set_extension("245"), "SET EXTENSION 245\n", id="set_extension"
        ),
        pytest.param(lambda ctx: ctx.set_music("on"), "SET MUSIC on default\n", id="set_music"),
        pytest.param(
            lambda ctx: ctx.set_music("off", "jazz"), "SET MUSIC off jazz\n", id="set_music_class"
        ),
        pytest.param(lambda ctx: ctx.set_priority("2"), "SET PRIORITY 2\n", id="set_priority"),
        pytest.param(
            lambda ctx: ctx.set_variable("test", "test test test"),
            'SET VARIABLE test "test test test"\n',
            id="set_variable",
        ),
        pytest.param(
            lambda ctx: ctx.stream_file("test", ["1", "2"]),
            'STREAM FILE "test" "1,2"\n',
            id="stream_file",
        ),
        pytest.param(
            lambda ctx: ctx.stream_file("test", ["1"], 500),
            'STREAM FILE "test" "1" 500\n',
            id="stream_file_offset",
        ),
        pytest.param(lambda ctx: ctx.verbose("test"), 'VERBOSE "test"\n', id="verbose"),
        pytest.param(
            lambda ctx: ctx.verbose("test", 2), 'VERBOSE "test" 2\n', id="verbose_level"
        ),
        pytest.param(
            lambda ctx: ctx.wait_for_digit(), "WAIT FOR DIGIT 10000\n", id="wait_for_digit"
        ),
        pytest.param(
            lambda ctx: ctx.wait_for_digit(-1), "WAIT FOR DIGIT -1\n", id="wait_for_digit_forever"
        ),
        pytest.param(
            lambda ctx: ctx.dial("SIP/100", 30, "tT"),
            "EXEC Dial SIP/100,30,tT\n",
            id="dial",
        ),
    ],
)
async def test_command_line(make_context, call, expected):
    assert await sent_by(make_context, call) == expected


# =============================================================================
# Optional arguments
# =============================================================================


class TestRecordFile:
    @pytest.mark.anyio
    async def test_defaults(self, make_context):
        sent = await sent_by(make_context, lambda ctx: ctx.record_file("message"))

        assert sent == 'RECORD FILE "message" wav "" -1 0\n'

    @pytest.mark.anyio
    async def test_beep_and_silence(self, make_context):
        sent = await sent_by(
            make_context,
            lambda ctx: ctx.record_file("message", "gsm", ["#"], 10000, 0, True, 3),
        )

        assert sent == 'RECORD FILE "message" gsm "#" 10000 0 1 s=3\n'


class TestControlStreamFile:
    @pytest.mark.anyio
    async def test_defaults(self, make_context):
        sent = await sent_by(make_context, lambda ctx: ctx.control_stream_file("intro"))

        assert sent == 'CONTROL STREAM FILE intro "1,2,3,4,5,6,7,8,0" 3000 # *\n'

    @pytest.mark.anyio
    async def test_pause_and_offset(self, make_context):
        sent = await sent_by(
            make_context,
            lambda ctx: ctx.control_stream_file("intro", ["1"], 1000, "3", "1", "2", 500),
        )

        assert sent == 'CONTROL STREAM FILE intro "1" 1000 3 1 2 500\n'


class TestResponses:
    """Builders hand back the parsed response unchanged."""

    @pytest.mark.anyio
    async def test_database_get_value(self, make_context):
        ctx, _ = await make_context()
        task = asyncio.create_task(ctx.database_get("cidname", "1000"))
        await asyncio.sleep(0)

        ctx.feed("200 result=1 (Alice)\n")
        response = await task

        assert response.result == "1"
        assert response.value == "Alice"
