"""Tests for the JSONL line codec."""

import json

import pytest

from memcore.codec import check_item, decode_lines, decode_record, encode_record
from memcore.types import MemoryItem, Record


def _item(**overrides) -> MemoryItem:
    fields = dict(id="c1", kind="fact", text="codec text", created_at="2024-01-01T00:00:00.000Z")
    fields.update(overrides)
    return MemoryItem(**fields)


def _wire(**overrides) -> dict:
    d = {"id": "w1", "kind": "note", "text": "t", "createdAt": "2024-01-01T00:00:00Z"}
    d.update(overrides)
    return d


class TestEncode:

    def test_single_line_with_embedded_newlines(self):
        line = encode_record(Record(_item(text="line one\nline two\r\nthree\u2028four"), [0.5]))
        assert "\n" not in line
        assert "\r" not in line
        assert "\u2028" not in line

    def test_wire_shape(self):
        line = encode_record(Record(_item(tags=["a"]), [0.1, 0.2]))
        data = json.loads(line)
        assert data == {
            "item": {
                "id": "c1",
                "kind": "fact",
                "text": "codec text",
                "createdAt": "2024-01-01T00:00:00.000Z",
                "tags": ["a"],
            },
            "embedding": [0.1, 0.2],
        }

    def test_unset_optional_fields_omitted(self):
        data = json.loads(encode_record(Record(_item())))
        assert set(data["item"]) == {"id", "kind", "text", "createdAt"}
        assert "embedding" not in data

    def test_round_trip_all_fields(self):
        item = _item(
            expires_at="2099-01-01T00:00:00.000Z",
            source={"channel": "slack", "from": "ops"},
            tags=["x", "y"],
            meta={"nested": {"n": 1, "ok": True, "none": None}},
        )
        decoded = decode_record(encode_record(Record(item, [1.0, -0.5])))
        assert decoded is not None
        assert decoded.item == item
        assert decoded.embedding == [1.0, -0.5]

    def test_round_trip_unicode_and_control_chars(self):
        text = "emoji \U0001F600 cjk 漢字 nul\x00 bell\x07 tab\t quote\" backslash\\ lone\ud800"
        decoded = decode_record(encode_record(Record(_item(text=text))))
        assert decoded.item.text == text


class TestDecode:

    def test_valid_line(self):
        record = decode_record(json.dumps({"item": _wire(), "embedding": [1, 2]}))
        assert record.item.id == "w1"
        assert record.item.created_at == "2024-01-01T00:00:00Z"
        assert record.embedding == [1.0, 2.0]

    @pytest.mark.parametrize("line", [
        "",
        "   ",
        "{not json",
        '{"item": ',
        "[1, 2, 3]",
        '"just a string"',
        "null",
        '{"embedding": [1]}',
        '{"item": null}',
        '{"item": "text"}',
    ])
    def test_invalid_lines(self, line):
        assert decode_record(line) is None

    @pytest.mark.parametrize("overrides", [
        {"id": 5},
        {"kind": "secret"},
        {"kind": None},
        {"text": ["a"]},
        {"createdAt": 1700000000},
        {"expiresAt": 123},
        {"tags": "a,b"},
        {"tags": ["a", 1]},
    ])
    def test_schema_violations(self, overrides):
        line = json.dumps({"item": _wire(**overrides)})
        assert decode_record(line) is None

    def test_missing_required_field(self):
        wire = _wire()
        del wire["createdAt"]
        assert decode_record(json.dumps({"item": wire})) is None

    def test_missing_embedding_allowed(self):
        record = decode_record(json.dumps({"item": _wire()}))
        assert record is not None
        assert record.embedding is None

    def test_malformed_embedding_dropped(self):
        record = decode_record(json.dumps({"item": _wire(), "embedding": ["x", True]}))
        assert record is not None
        assert record.embedding is None

    def test_unknown_item_keys_ignored(self):
        record = decode_record(json.dumps({"item": _wire(__proto__={"polluted": True}, extra=1)}))
        assert record is not None
        assert not hasattr(record.item, "polluted")
        assert not hasattr(record.item, "extra")

    def test_meta_with_dunder_keys_stays_plain_data(self):
        meta = {"__proto__": {"admin": True}, "__class__": "x", "constructor": {}}
        record = decode_record(json.dumps({"item": _wire(meta=meta)}))
        assert record.item.meta == meta
        assert type(record.item.meta) is dict
        assert not hasattr({}, "admin")

    def test_deeply_nested_line_is_skipped(self):
        line = '{"item": ' + "[" * 100000 + "]" * 100000 + "}"
        assert decode_record(line) is None


class TestCheckItem:

    def test_valid(self):
        assert check_item(_wire()) is None

    def test_reason_for_bad_kind(self):
        assert "kind" in check_item(_wire(kind="bogus"))

    def test_not_an_object(self):
        assert check_item([]) == "item is not an object"


class TestDecodeLines:

    def test_skips_invalid_and_blank_lines_in_order(self):
        good1 = encode_record(Record(_item(id="a")))
        good2 = encode_record(Record(_item(id="b")))
        text = "\n".join([good1, "", "{broken", json.dumps({"item": _wire(kind="x")}), good2, ""])
        records = decode_lines(text)
        assert [r.item.id for r in records] == ["a", "b"]

    def test_empty_text(self):
        assert decode_lines("") == []
