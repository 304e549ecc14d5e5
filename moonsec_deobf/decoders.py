import re
import base64
import binascii
from typing import NamedTuple

_WHITESPACE = re.compile(r'\s')
_HEX_PAIR = re.compile(r'[0-9a-fA-F]{2}')


class DecodeResult(NamedTuple):
    """Outcome of a best-effort decode: either decoded text or the untouched input."""
    text: str
    decoded: bool


def try_decode_base64(text: str) -> DecodeResult:
    """
    Decodes standard base64 into UTF-8 text.
    Whitespace is dropped and missing '=' padding is added before decoding.
    Malformed payloads (bad alphabet, bad padding, non UTF-8 bytes) come back
    as a passthrough of the original input instead of raising.
    """
    payload = _WHITESPACE.sub('', text)
    while len(payload) % 4 != 0:
        payload += '='

    try:
        raw = base64.b64decode(payload, validate=True)
        return DecodeResult(raw.decode('utf-8'), True)
    except (binascii.Error, ValueError):
        return DecodeResult(text, False)


def decode_base64(text: str) -> str:
    """Decodes a base64 literal, returning the input unchanged on failure."""
    return try_decode_base64(text).text


def decode_hex_escape(hex_pair: str) -> str:
    """
    Turns the two hex digits of a \\xNN escape into the character with that byte value.
    Anything that is not valid hex is returned as is.
    """
    if not _HEX_PAIR.fullmatch(hex_pair):
        return hex_pair
    return chr(int(hex_pair, 16))
