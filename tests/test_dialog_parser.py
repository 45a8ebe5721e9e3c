import dataclasses

import pytest

from dialog2img.services.dialog_parser import Message, Speaker, parse_dialog


def test_remote_and_local_lines():
    messages = parse_dialog("*Hi\nHello")
    assert messages == [
        Message(Speaker.REMOTE, "Hi"),
        Message(Speaker.LOCAL, "Hello"),
    ]


@pytest.mark.parametrize("dialog", [
    "",
    "one line",
    "*a\nb\n*c",
    "a\n\n\nb",
    "trailing newline\n",
    "\n",
])
def test_one_message_per_segment(dialog):
    segments = dialog.split("\n")
    messages = parse_dialog(dialog)
    assert len(messages) == len(segments)
    for segment, message in zip(segments, messages):
        expected = Speaker.REMOTE if segment.startswith("*") else Speaker.LOCAL
        assert message.speaker is expected


def test_empty_input_yields_single_empty_message():
    assert parse_dialog("") == [Message(Speaker.LOCAL, "")]


def test_marker_removed_and_text_stripped():
    messages = parse_dialog("*   so far away   \n   close   ")
    assert messages[0] == Message(Speaker.REMOTE, "so far away")
    assert messages[1] == Message(Speaker.LOCAL, "close")


def test_marker_only_at_line_start():
    [message] = parse_dialog(" *not remote")
    assert message.speaker is Speaker.LOCAL
    assert message.text == "*not remote"


def test_custom_marker():
    messages = parse_dialog(">hey\n*star", marker=">")
    assert messages[0] == Message(Speaker.REMOTE, "hey")
    assert messages[1] == Message(Speaker.LOCAL, "*star")


def test_blank_lines_are_kept():
    messages = parse_dialog("a\n\n*b")
    assert [m.text for m in messages] == ["a", "", "b"]


def test_crlf_input():
    messages = parse_dialog("*Before\r\nAfter\r\n")
    assert [m.text for m in messages] == ["Before", "After", ""]


def test_message_is_immutable():
    message = Message(Speaker.LOCAL, "x")
    with pytest.raises(dataclasses.FrozenInstanceError):
        message.text = "y"


def test_speaker_values():
    assert Speaker.LOCAL.value == "me"
    assert Speaker.REMOTE.value == "other"
