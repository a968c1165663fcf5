"""MIME transfer-encoding and header encoded-word helpers."""

import base64
import binascii
import quopri
import re
from email import charset as email_charset
from email.header import decode_header, make_header


_ENCODED_WORD_RE = re.compile(r"=\?[^?\s]+\?[BbQq]\?[^?\s]*\?=")
_BASE64_RE = re.compile(r"^[A-Za-z0-9+/\s]+={0,2}\s*$")
_QP_RE = re.compile(r"=([0-9A-Fa-f]{2}|\r?\n)")


def encode_base64(text: str, charset: str = "utf-8") -> str:
    """RFC 2045 Base64 body, wrapped at 76 columns."""
    return base64.encodebytes(text.encode(charset)).decode("ascii").rstrip("\n")


def decode_base64(data: str, charset: str = "utf-8") -> str:
    """Decode Base64 text, ignoring line breaks and whitespace.

    Raises:
        ValueError: If the input is not valid Base64.
    """
    compact = "".join(data.split())
    try:
        raw = base64.b64decode(compact, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid Base64 input: {e}") from e
    return raw.decode(charset)


def encode_quoted_printable(text: str, charset: str = "utf-8") -> str:
    return quopri.encodestring(text.encode(charset)).decode("ascii")


def decode_quoted_printable(data: str, charset: str = "utf-8") -> str:
    return quopri.decodestring(data.encode(charset)).decode(charset)


def decode_encoded_words(value: str) -> str:
    """Decode RFC 2047 encoded-words (``=?charset?B|Q?data?=``) in a header."""
    return str(make_header(decode_header(value)))


def encode_subject(text: str, encoding: str = "B", charset: str = "utf-8") -> str:
    """Encode a subject line as a single RFC 2047 encoded-word.

    Args:
        text: Subject text.
        encoding: ``"B"`` (Base64) or ``"Q"`` (quoted-printable).
        charset: Character set to declare.

    Returns:
        str: Encoded-word; pure ASCII input is returned unchanged.

    Raises:
        ValueError: If the encoding is not B or Q.
    """
    if text.isascii():
        return text

    cs = email_charset.Charset(charset)
    if encoding.upper() == "B":
        cs.header_encoding = email_charset.BASE64
    elif encoding.upper() == "Q":
        cs.header_encoding = email_charset.QP
    else:
        raise ValueError(f"Unsupported encoded-word encoding: {encoding}")
    return cs.header_encode(text)


def auto_decode(data: str) -> tuple[str, str]:
    """Guess how a MIME fragment was encoded and decode it.

    Encoded-words are tried first, then Base64, then quoted-printable.

    Returns:
        tuple[str, str]: ``(method, decoded_text)`` where method is one of
        ``rfc2047``, ``base64``, ``quoted-printable`` or ``plain``.
    """
    if _ENCODED_WORD_RE.search(data):
        return "rfc2047", decode_encoded_words(data)

    stripped = data.strip()
    if stripped and len("".join(stripped.split())) % 4 == 0 and _BASE64_RE.match(stripped):
        try:
            return "base64", decode_base64(stripped)
        except (ValueError, UnicodeDecodeError):
            pass

    if _QP_RE.search(data):
        try:
            return "quoted-printable", decode_quoted_printable(data)
        except UnicodeDecodeError:
            pass

    return "plain", data
