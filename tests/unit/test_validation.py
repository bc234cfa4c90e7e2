"""Tests for request decoding and validation."""

import json

import pytest

from episode_talk.core.validation import (
    decode_payload,
    parse_generation_request,
    validate_body,
)
from episode_talk.models.generation import (
    DEFAULT_LENGTH,
    LENGTH_MAX,
    LENGTH_MIN,
    GenerationRequest,
)
from episode_talk.utils.errors import InvalidInputError


class TestDecodePayload:
    """Tests for decode_payload function."""

    @pytest.mark.parametrize("raw", [None, b"", "", b"   ", "\n"])
    def test_empty_body_is_empty_record(self, raw):
        """Absent or blank bodies decode to an empty record."""
        assert decode_payload(raw) == {}

    def test_decodes_bytes(self):
        """Test JSON bytes are decoded."""
        raw = json.dumps({"theme": "初めてのデート"}).encode("utf-8")
        assert decode_payload(raw) == {"theme": "初めてのデート"}

    def test_decodes_double_encoded_body(self):
        """A JSON string holding JSON is decoded twice."""
        raw = json.dumps(json.dumps({"length": 300}))
        assert decode_payload(raw) == {"length": 300}

    def test_double_encoded_empty_string(self):
        """An encoded empty string is an empty record."""
        assert decode_payload('""') == {}

    def test_invalid_json_rejected(self):
        """Test invalid JSON raises InvalidInputError with a form error."""
        with pytest.raises(InvalidInputError) as exc_info:
            decode_payload(b"{theme: ")

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["formErrors"]
        assert exc_info.value.detail["fieldErrors"] == {}

    def test_invalid_utf8_rejected(self):
        """Test undecodable bytes are rejected."""
        with pytest.raises(InvalidInputError):
            decode_payload(b"\xff\xfe\xfd")

    def test_non_object_passes_through(self):
        """Decoding does not check shape; parsing does."""
        assert decode_payload("[1, 2]") == [1, 2]

    @pytest.mark.parametrize(
        "raw",
        [
            b"[" * 100000,
            b'{"length": ' + b"1" * 5000 + b"}",
            json.dumps("[" * 100000),
        ],
    )
    def test_undecodable_json_rejected(self, raw):
        """Deep nesting and oversized integers are form errors, not crashes."""
        with pytest.raises(InvalidInputError) as exc_info:
            decode_payload(raw)

        assert exc_info.value.detail["formErrors"]
        assert exc_info.value.detail["fieldErrors"] == {}


class TestParseGenerationRequest:
    """Tests for parse_generation_request function."""

    def test_defaults_applied(self):
        """Omitted fields take their documented defaults."""
        request = parse_generation_request({})
        assert request == GenerationRequest(theme="", genre="", characters="", length=350)
        assert DEFAULT_LENGTH == 350

    def test_none_payload_is_empty(self):
        """Test None is treated as an empty record."""
        assert parse_generation_request(None).length == DEFAULT_LENGTH

    def test_partial_payload(self):
        """Test set fields are kept and others defaulted."""
        request = parse_generation_request({"theme": "初めてのデート", "length": 300})
        assert request.theme == "初めてのデート"
        assert request.length == 300
        assert request.genre == ""
        assert request.characters == ""

    @pytest.mark.parametrize("length", [LENGTH_MIN, LENGTH_MAX])
    def test_boundary_lengths_accepted(self, length):
        """Lengths at the exact bounds are valid."""
        assert parse_generation_request({"length": length}).length == length

    @pytest.mark.parametrize("length", [LENGTH_MIN - 1, LENGTH_MAX + 1, 0, -100])
    def test_out_of_range_length_rejected(self, length):
        """Out-of-range lengths fail naming the length field."""
        with pytest.raises(InvalidInputError) as exc_info:
            parse_generation_request({"length": length})

        detail = exc_info.value.detail
        assert exc_info.value.message == "Invalid input"
        assert list(detail["fieldErrors"]) == ["length"]

    @pytest.mark.parametrize("length", ["300", 300.5, True, None])
    def test_non_integer_length_rejected(self, length):
        """Strings, floats, booleans and null are not integers."""
        with pytest.raises(InvalidInputError) as exc_info:
            parse_generation_request({"length": length})
        assert "length" in exc_info.value.detail["fieldErrors"]

    @pytest.mark.parametrize(
        "field,limit",
        [("theme", 200), ("genre", 100), ("characters", 200)],
    )
    def test_string_limits(self, field, limit):
        """Strings at the limit pass; one more character fails."""
        assert getattr(parse_generation_request({field: "あ" * limit}), field) == "あ" * limit

        with pytest.raises(InvalidInputError) as exc_info:
            parse_generation_request({field: "あ" * (limit + 1)})
        assert field in exc_info.value.detail["fieldErrors"]

    def test_non_string_theme_rejected(self):
        """Test numbers are not accepted as strings."""
        with pytest.raises(InvalidInputError) as exc_info:
            parse_generation_request({"theme": 123})
        assert "theme" in exc_info.value.detail["fieldErrors"]

    def test_one_bad_field_invalidates_request(self):
        """A single violation rejects the whole request."""
        with pytest.raises(InvalidInputError) as exc_info:
            parse_generation_request({"theme": "ok", "genre": "x" * 101, "length": 300})
        assert list(exc_info.value.detail["fieldErrors"]) == ["genre"]

    def test_multiple_bad_fields_reported(self):
        """Test every failing field appears in the breakdown."""
        with pytest.raises(InvalidInputError) as exc_info:
            parse_generation_request({"genre": "x" * 101, "length": 1})
        assert set(exc_info.value.detail["fieldErrors"]) == {"genre", "length"}

    def test_unknown_fields_ignored(self):
        """Test unknown keys do not fail validation."""
        request = parse_generation_request({"theme": "旅行", "mood": "happy"})
        assert request.theme == "旅行"

    @pytest.mark.parametrize("payload", [[], "text", 42])
    def test_non_object_rejected(self, payload):
        """Test non-object payloads produce a form error."""
        with pytest.raises(InvalidInputError) as exc_info:
            parse_generation_request(payload)
        assert exc_info.value.detail["formErrors"]


class TestValidateBody:
    """Tests for validate_body function."""

    def test_raw_body_round_trip(self):
        """Test bytes go straight to a validated request."""
        request = validate_body(b'{"characters": "\\u50d5\\u3068\\u7236", "length": 500}')
        assert request.characters == "僕と父"
        assert request.length == 500

    def test_empty_body_defaults(self):
        """Test an empty body yields the default request."""
        assert validate_body(b"") == GenerationRequest()
