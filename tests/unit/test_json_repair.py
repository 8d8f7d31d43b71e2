"""Unit tests for the model reply repair ladder"""

import json

import pytest

from debitflow.domain.extraction.exceptions import UnparsableReply
from debitflow.domain.extraction.json_repair import (
    close_truncated_object,
    escape_string_contents,
    load_reply_json,
    strip_code_fences,
)


class TestStripCodeFences:

    def test_fence_with_language_tag(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_without_tag(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_unfenced_text_untouched(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestEscapeStringContents:

    def test_raw_newline_inside_string(self):
        repaired = escape_string_contents('{"client": "ACME\nSARL"}')
        assert json.loads(repaired) == {"client": "ACME\nSARL"}

    def test_structural_whitespace_kept(self):
        text = '{\n  "a": 1,\n  "b": "x"\n}'
        assert escape_string_contents(text) == text

    def test_invalid_backslash_escaped(self):
        repaired = escape_string_contents('{"ref": "N\\° 12"}')
        assert json.loads(repaired) == {"ref": "N\\° 12"}


class TestLoadReplyJson:
    """Each ladder stage, in order"""

    def test_direct(self):
        payload, stage = load_reply_json('{"numeroOS": "OS1"}')
        assert payload == {"numeroOS": "OS1"}
        assert stage == "direct"

    def test_fenced_reply_is_direct_after_unwrapping(self):
        _, stage = load_reply_json('```json\n{"numeroOS": "OS1"}\n```')
        assert stage == "direct"

    def test_control_characters_stripped(self):
        payload, stage = load_reply_json('{"numeroOS": "OS\x071"}')
        assert payload == {"numeroOS": "OS1"}
        assert stage == "strip_control_characters"

    def test_raw_newlines_escaped(self):
        payload, stage = load_reply_json('```json\n{"client": "ACME\nSARL"}\n```')
        assert payload == {"client": "ACME\nSARL"}
        assert stage == "escape_string_contents"

    def test_prose_around_object(self):
        payload, stage = load_reply_json('Voici la fiche:\n{"numeroOS": "OS1"}\nBonne journée')
        assert payload == {"numeroOS": "OS1"}
        assert stage == "greedy_object"

    def test_truncated_reply_closed(self):
        text = '{"numeroOS": "OS1", "items": [{"materiaux": "GRANIT K2", "qte": 1}, {"materiaux": "MAR'
        payload, stage = load_reply_json(text)
        assert stage == "close_truncated"
        assert payload["numeroOS"] == "OS1"
        assert payload["items"][0] == {"materiaux": "GRANIT K2", "qte": 1}

    def test_bare_item_array_wrapped(self):
        payload, _ = load_reply_json('[{"materiaux": "GRANIT K2"}]')
        assert payload == {"items": [{"materiaux": "GRANIT K2"}]}

    def test_empty_reply(self):
        with pytest.raises(UnparsableReply) as exc_info:
            load_reply_json("   ")
        assert exc_info.value.parse_error == "empty reply"

    def test_no_json_at_all(self):
        with pytest.raises(UnparsableReply) as exc_info:
            load_reply_json("Je ne peux pas lire ce document.")
        assert exc_info.value.sample.startswith("Je ne peux pas")


class TestCloseTruncatedObject:

    def test_complete_object_with_trailing_prose(self):
        assert json.loads(close_truncated_object('{"a": [1, 2]} merci')) == {"a": [1, 2]}

    def test_cut_inside_string_value(self):
        assert json.loads(close_truncated_object('{"a": 1, "b": "tex')) == {"a": 1, "b": "tex"}
