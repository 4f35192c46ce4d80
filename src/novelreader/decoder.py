"""Byte decoding with encoding detection.

Raw bytes are decoded by trying an ordered chain of strategies. Every chain
ends with a permissive UTF-8 decode that replaces invalid sequences, so
decoding never fails: a wrong guess yields garbled text, not an error.

Supported encodings are UTF-8 and the GBK family (GB2312, GBK, GB18030).
"""

import logging
from dataclasses import dataclass
from enum import Enum

import chardet

from .document import ReaderError

logger = logging.getLogger(__name__)

# Labels chardet (and common tooling) use for the GBK family
LEGACY_ALIASES = frozenset(
    {
        "gbk",
        "gb2312",
        "gb18030",
        "gb-18030",
        "cp936",
        "ms936",
        "euc-cn",
        "x-gbk",
        "hz-gb-2312",
    }
)


class EncodingPolicy(str, Enum):
    """How a document's bytes are decoded at load time."""

    UTF8 = "utf8"
    GBK = "gbk"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: "EncodingPolicy | str") -> "EncodingPolicy":
        """Convert a policy name to a policy.

        Raises:
            ReaderError: If the name is not a known policy.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ReaderError(
                f"Invalid encoding: {value}. Must be one of: {valid}"
            ) from None


@dataclass(frozen=True)
class DecodeStrategy:
    """A single codec attempt."""

    encoding: str
    errors: str = "strict"

    @property
    def label(self) -> str:
        # utf-8-sig only differs from utf-8 by dropping a leading BOM
        return self.encoding.removesuffix("-sig")

    def __call__(self, data: bytes) -> str:
        return data.decode(self.encoding, self.errors)


@dataclass(frozen=True)
class Decoded:
    """Decoded text and the codec that produced it."""

    text: str
    encoding: str


SENTINEL = DecodeStrategy("utf-8", errors="replace")

UTF8_CHAIN = (DecodeStrategy("utf-8-sig"), SENTINEL)
GBK_CHAIN = (
    DecodeStrategy("gbk"),
    DecodeStrategy("gb18030"),
    # Only undecodable bytes become U+FFFD
    DecodeStrategy("gb18030", errors="replace"),
    SENTINEL,
)


def detect_encoding(data: bytes) -> str | None:
    """Guess the encoding label of data with chardet.

    Returns:
        Lower-cased label, or None if chardet has no guess or fails.
    """
    try:
        result = chardet.detect(data)
    except Exception as e:
        logger.debug("Encoding detection failed: %s", e)
        return None
    label = (result or {}).get("encoding")
    if not label:
        return None
    return str(label).lower()


def is_legacy_label(label: str | None) -> bool:
    return label is not None and label.lower() in LEGACY_ALIASES


def strategies_for(
    data: bytes, policy: EncodingPolicy | str
) -> tuple[DecodeStrategy, ...]:
    """Return the ordered decode chain for data under policy."""
    policy = EncodingPolicy.parse(policy)
    if policy is EncodingPolicy.UTF8:
        return UTF8_CHAIN
    if policy is EncodingPolicy.GBK:
        return GBK_CHAIN

    label = detect_encoding(data)
    if label is None:
        return (SENTINEL,)
    logger.debug("Detected encoding %s", label)
    return GBK_CHAIN if is_legacy_label(label) else UTF8_CHAIN


def decode_bytes(data: bytes, policy: EncodingPolicy | str) -> Decoded:
    """Decode data, reporting which codec succeeded.

    Args:
        data: Raw document bytes.
        policy: Encoding policy or its name ("utf8", "gbk", "auto").

    Returns:
        Decoded text with the codec label used.

    Raises:
        ReaderError: If policy is not a known policy name. Malformed
            bytes never raise.
    """
    data = bytes(data)
    for strategy in strategies_for(data, policy):
        try:
            text = strategy(data)
        except (UnicodeDecodeError, LookupError) as e:
            logger.debug("Decoding with %s failed: %s", strategy.encoding, e)
            continue
        return Decoded(text=text, encoding=strategy.label)
    return Decoded(text=SENTINEL(data), encoding=SENTINEL.label)


def decode(data: bytes, policy: EncodingPolicy | str) -> str:
    """Decode data to text under policy. Never raises on malformed bytes."""
    return decode_bytes(data, policy).text
