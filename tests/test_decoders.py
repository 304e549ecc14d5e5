import base64

import pytest

from moonsec_deobf.decoders import decode_base64, decode_hex_escape, try_decode_base64


def test_decode_base64_basic():
    assert decode_base64("SGVsbG8=") == "Hello"


def test_decode_base64_adds_missing_padding_and_drops_whitespace():
    assert decode_base64("SGVsbG8") == "Hello"
    assert decode_base64(" SGVs\nbG8= ") == "Hello"


@pytest.mark.parametrize("text", ["print('hi')", "local x = 1\nreturn x", "héllo wörld", ""])
def test_decode_base64_round_trip(text):
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    assert decode_base64(encoded) == text


@pytest.mark.parametrize("payload", ["abcde", "not base64!", "//4="])
def test_decode_base64_passthrough_on_failure(payload):
    # "//4=" is valid base64 but decodes to bytes that are not UTF-8
    result = try_decode_base64(payload)
    assert result.decoded is False
    assert result.text == payload
    assert decode_base64(payload) == payload


def test_try_decode_base64_flags_success():
    assert try_decode_base64("SGVsbG8=") == ("Hello", True)


def test_decode_hex_escape_every_byte():
    for value in range(256):
        assert decode_hex_escape(format(value, "02x")) == chr(value)
        assert decode_hex_escape(format(value, "02X")) == chr(value)


@pytest.mark.parametrize("pair", ["zz", "4", "+1", "123"])
def test_decode_hex_escape_invalid_is_identity(pair):
    assert decode_hex_escape(pair) == pair
