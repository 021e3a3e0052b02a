"""
Tests for ESL data model (Reply / ESLEvent).

Referências:
- fsesl/event.py
"""

import pytest

from fsesl.event import ESLEvent, Reply, parse_headers


class TestParseHeaders:

    def test_simple_headers(self):
        headers = parse_headers("Content-Type: command/reply\nReply-Text: +OK accepted")

        assert headers == {"Content-Type": "command/reply", "Reply-Text": "+OK accepted"}

    def test_value_with_colon(self):
        """Só o primeiro ':' separa chave e valor."""
        headers = parse_headers("Reply-Text: +OK Job-UUID: job-1")
        assert headers["Reply-Text"] == "+OK Job-UUID: job-1"

    def test_crlf_and_garbage_lines(self):
        headers = parse_headers("A: 1\r\nno separator here\r\nB: 2\r")
        assert headers == {"A": "1", "B": "2"}

    def test_unquote_values(self):
        headers = parse_headers("Caller-Caller-ID-Name: Jo%C3%A3o%20Silva", unquote_values=True)
        assert headers["Caller-Caller-ID-Name"] == "João Silva"


class TestReply:

    def test_command_reply_ok(self):
        reply = Reply.from_frame(
            {"Content-Type": "command/reply", "Reply-Text": "+OK accepted"}
        )

        assert reply.ok
        assert reply.status == "+OK accepted"
        assert reply.content_type == "command/reply"
        assert reply.body_lines == ()

    def test_command_reply_error(self):
        reply = Reply.from_frame(
            {"Content-Type": "command/reply", "Reply-Text": "-ERR invalid"}
        )
        assert not reply.ok

    def test_api_response_body_lines(self):
        reply = Reply.from_frame(
            {"Content-Type": "api/response", "Content-Length": "12"},
            "line1\nline2\n",
        )

        assert reply.ok
        assert reply.body_lines == ("line1", "line2")
        assert reply.body == "line1\nline2"

    def test_api_response_error_status(self):
        reply = Reply.from_frame(
            {"Content-Type": "api/response"},
            "-ERR No such channel!\n",
        )

        assert not reply.ok
        assert reply.status == "-ERR No such channel!"

    def test_headers_are_read_only(self):
        reply = Reply.from_frame({"Reply-Text": "+OK"})

        with pytest.raises(TypeError):
            reply.headers["Reply-Text"] = "-ERR"

    def test_body_lines_become_tuple(self):
        reply = Reply(status="+OK", body_lines=["a", "b"])
        assert reply.body_lines == ("a", "b")


class TestESLEvent:

    def test_from_plain_headers_are_unquoted(self):
        text = (
            "Event-Name: CHANNEL_ANSWER\n"
            "Unique-ID: abc-123\n"
            "Caller-Caller-ID-Number: 1001\n"
            "Channel-State: CS_EXECUTE\n"
            "Variable_sip_from_display: Maria%20Souza\n"
            "\n"
        )
        event = ESLEvent.from_plain(text)

        assert event.name == "CHANNEL_ANSWER"
        assert event.uuid == "abc-123"
        assert event.caller_id_number == "1001"
        assert event.channel_state == "CS_EXECUTE"
        assert event.get("Variable_sip_from_display") == "Maria Souza"
        assert event.body is None

    def test_from_plain_with_body(self):
        body = "+OK 7f4de4bc-17d7-11dd-b7a0-db4edd065621\n"
        text = (
            "Event-Name: BACKGROUND_JOB\n"
            "Job-UUID: job-7\n"
            f"Content-Length: {len(body.encode())}\n"
            "\n"
            f"{body}"
        )
        event = ESLEvent.from_plain(text)

        assert event.is_background_job
        assert event.job_uuid == "job-7"
        assert event.body == body

    def test_body_length_counts_bytes(self):
        body = "ação\n"
        text = (
            "Event-Name: CUSTOM\n"
            f"Content-Length: {len(body.encode())}\n"
            "\n"
            f"{body}trailing"
        )
        assert ESLEvent.from_plain(text).body == body

    def test_missing_event_name(self):
        assert ESLEvent.from_plain("Unique-ID: x\n\n").name == "UNKNOWN"

    def test_hangup_cause(self):
        event = ESLEvent(
            name="CHANNEL_HANGUP",
            headers={"Hangup-Cause": "NORMAL_CLEARING"},
        )
        assert event.hangup_cause == "NORMAL_CLEARING"
        assert not event.is_background_job

    def test_event_is_immutable(self, sample_event):
        with pytest.raises(TypeError):
            sample_event.headers["Unique-ID"] = "other"
        with pytest.raises(AttributeError):
            sample_event.name = "OTHER"

    def test_get_default(self, sample_event):
        assert sample_event.get("Missing", "fallback") == "fallback"
