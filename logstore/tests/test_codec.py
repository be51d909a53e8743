"""Unit tests for the bundle id codec."""

import pytest
from common.utils import generate_ulid

from logstore.codec import STRIDE, decode_ids, encode_ids
from logstore.exceptions import (
    CodecError,
    EmptyInput,
    MalformedId,
    Misaligned,
    Truncated,
)


class TestEncodeIds:
    """Tests for encode_ids."""

    def test_concatenates_canonical_text(self):
        """Each id contributes its 26-character text, in order."""
        ids = [generate_ulid() for _ in range(3)]
        encoded = encode_ids(ids)
        assert len(encoded) == 3 * STRIDE
        assert encoded == "".join(str(i) for i in ids).encode("ascii")

    def test_empty_input_rejected(self):
        """An empty list raises EmptyInput."""
        with pytest.raises(EmptyInput):
            encode_ids([])

    def test_codec_errors_are_value_errors(self):
        """Codec errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            encode_ids([])


class TestDecodeIds:
    """Tests for decode_ids."""

    @pytest.mark.parametrize("count", [1, 2, 5])
    def test_round_trip_preserves_order(self, count):
        """decode(encode(xs)) == xs for non-empty xs."""
        ids = [generate_ulid() for _ in range(count)]
        assert decode_ids(encode_ids(ids)) == ids

    def test_accepts_text(self):
        """A str value (as stored by some cache backends) decodes the same."""
        ids = [generate_ulid(), generate_ulid()]
        assert decode_ids(encode_ids(ids).decode("ascii")) == ids

    def test_accepts_lowercase(self):
        """Lowercase canonical text decodes to the same id."""
        file_id = generate_ulid()
        assert decode_ids(str(file_id).lower().encode("ascii")) == [file_id]

    @pytest.mark.parametrize("length", [0, 1, STRIDE - 1])
    def test_shorter_than_one_stride_is_truncated(self, length):
        """Input shorter than one stride raises Truncated."""
        with pytest.raises(Truncated) as exc_info:
            decode_ids(b"0" * length)
        assert exc_info.value.length == length

    @pytest.mark.parametrize("extra", [1, STRIDE - 1])
    def test_partial_trailing_stride_is_misaligned(self, extra):
        """Input length not a multiple of the stride raises Misaligned."""
        data = encode_ids([generate_ulid()]) + b"0" * extra
        with pytest.raises(Misaligned) as exc_info:
            decode_ids(data)
        assert exc_info.value.length == STRIDE + extra

    def test_invalid_characters_are_malformed(self):
        """A stride with non-Crockford characters raises MalformedId."""
        data = encode_ids([generate_ulid()]) + b"!" * STRIDE
        with pytest.raises(MalformedId) as exc_info:
            decode_ids(data)
        assert exc_info.value.offset == STRIDE

    def test_overflowing_timestamp_is_malformed(self):
        """A leading character above '7' cannot be a ULID."""
        with pytest.raises(MalformedId):
            decode_ids(b"8" + b"0" * (STRIDE - 1))

    def test_excluded_letters_are_malformed(self):
        """Crockford base32 excludes I, L, O and U."""
        with pytest.raises(CodecError):
            decode_ids(b"0" * (STRIDE - 1) + b"U")
