"""LZ machinery shared by the Yaz0 and Yay0 codecs.

Both formats use the same token model: a mask bit selects either one literal
byte or a back-reference whose 16-bit code packs a 4-bit length and a 12-bit
distance.  They differ only in where masks, literals and codes live in the
byte stream, so each codec supplies a :class:`TokenSource` (decode) or a
:class:`TokenSink` (encode) and the loops below do the rest.

The matcher defers a match by one literal when the next position matches at
least two bytes longer (see :class:`Lookahead`).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from rarctool.errors import FormatError
from rarctool.progress import ProgressCallback, noop_progress

SEARCH_WINDOW = 0x400
MIN_MATCH = 3
# Lengths from here on need the extra length byte; 0x12 + 0xFF is the cap.
LONG_MATCH = 0x12
MAX_MATCH = 0xFF + LONG_MATCH
SHORT_MATCH_BIAS = 2
MAX_DISTANCE = 0xFFF


# ---------------------------------------------------------------------------
# Matcher
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Match:
    length: int
    position: int


def find_match(src: bytes, pos: int, window: int = SEARCH_WINDOW) -> Match:
    """Find the longest earlier occurrence of the bytes starting at *pos*.

    Searches every start in ``[pos - window, pos)``; the match may run into
    the bytes being encoded.  On equal length the earliest start wins.  A
    two-byte match is reported as length 1 since it cannot be encoded
    profitably.
    """
    limit = len(src) - pos
    best_len = 1
    best_pos = 0
    if limit <= 0:
        return Match(best_len, best_pos)

    first = src[pos]
    for i in range(max(0, pos - window), pos):
        if src[i] != first:
            continue
        j = 1
        while j < limit and src[i + j] == src[pos + j]:
            j += 1
        if j > best_len:
            best_len = j
            best_pos = i
            if j == limit:
                break

    if best_len == 2:
        best_len = 1
    return Match(best_len, best_pos)


@dataclass(slots=True)
class Lookahead:
    """Per-call matcher state: at most one match deferred by the lookahead."""

    pending: Match | None = None

    def next_match(self, src: bytes, pos: int) -> Match:
        if self.pending is not None:
            match, self.pending = self.pending, None
            return match

        current = find_match(src, pos)
        if current.length >= MIN_MATCH:
            ahead = find_match(src, pos + 1)
            # Prefer one literal now if the next position matches 2+ bytes longer.
            if ahead.length >= current.length + 2:
                self.pending = ahead
                return Match(1, current.position)
        return current


class TokenSink(Protocol):
    def literal(self, value: int) -> None: ...

    def reference(self, distance: int, length: int) -> None:
        """Emit a back-reference; *distance* is the stored value (offset - 1)."""
        ...


def compress_tokens(
    src: bytes,
    sink: TokenSink,
    *,
    phase: str = "lz",
    on_progress: ProgressCallback = noop_progress,
) -> None:
    """Drive *sink* with the token stream for *src*."""
    lookahead = Lookahead()
    size = len(src)
    pos = 0
    last_pct = -1
    while pos < size:
        match = lookahead.next_match(src, pos)
        if match.length < MIN_MATCH:
            sink.literal(src[pos])
            pos += 1
        else:
            length = min(match.length, MAX_MATCH)
            sink.reference(pos - match.position - 1, length)
            pos += length

        pct = pos * 100 // size
        if pct != last_pct:
            last_pct = pct
            on_progress(phase, f"{pos}/{size} bytes", pct)


def pack_code(distance: int, length: int) -> tuple[int, int | None]:
    """Return ``(code, extension)`` for a back-reference.

    *extension* is the extra length byte for long matches, else ``None``.
    """
    if length >= LONG_MATCH:
        return distance, length - LONG_MATCH
    return ((length - SHORT_MATCH_BIAS) << 12) | distance, None


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


class DecodeState(Enum):
    RELOAD_MASK = auto()
    SELECT_TOKEN = auto()
    LITERAL = auto()
    BACK_REFERENCE = auto()
    DONE = auto()


class TokenSource(Protocol):
    mask_bits: int

    def read_mask(self) -> int: ...

    def read_literal(self) -> int: ...

    def read_code(self) -> int: ...

    def read_extension(self) -> int: ...


def check_declared_size(codec: str, size: int, payload_size: int) -> None:
    """Reject a header size that *payload_size* token bytes could never produce.

    No input byte expands to more than :data:`MAX_MATCH` output bytes.
    """
    limit = max(payload_size, 0) * MAX_MATCH
    if size > limit:
        raise FormatError(
            f"{codec} header declares {size} bytes, but {payload_size} bytes of "
            f"payload expand to at most {limit}"
        )


def expand_tokens(source: TokenSource, size: int) -> bytes:
    """Run the shared decode state machine until *size* bytes are produced."""
    out = bytearray(size)
    produced = 0
    mask = 0
    remaining = 0
    top_bit = 1 << (source.mask_bits - 1)

    state = DecodeState.RELOAD_MASK if size else DecodeState.DONE
    while state is not DecodeState.DONE:
        if state is DecodeState.RELOAD_MASK:
            mask = source.read_mask()
            remaining = source.mask_bits
            state = DecodeState.SELECT_TOKEN

        elif state is DecodeState.SELECT_TOKEN:
            if produced >= size:
                state = DecodeState.DONE
            elif remaining == 0:
                state = DecodeState.RELOAD_MASK
            else:
                state = DecodeState.LITERAL if mask & top_bit else DecodeState.BACK_REFERENCE
                mask <<= 1
                remaining -= 1

        elif state is DecodeState.LITERAL:
            out[produced] = source.read_literal()
            produced += 1
            state = DecodeState.SELECT_TOKEN

        else:
            code = source.read_code()
            start = produced - (code & MAX_DISTANCE) - 1
            nibble = code >> 12
            if nibble == 0:
                length = source.read_extension() + LONG_MATCH
            else:
                length = nibble + SHORT_MATCH_BIAS
            if start < 0:
                raise FormatError(
                    f"Back-reference at output offset {produced} points {-start} bytes "
                    "before the start of the data"
                )
            length = min(length, size - produced)
            if produced - start >= length:
                out[produced : produced + length] = out[start : start + length]
            else:
                # Overlapping copy: repeat the pattern byte by byte.
                for i in range(length):
                    out[produced + i] = out[start + i]
            produced += length
            state = DecodeState.SELECT_TOKEN

    return bytes(out)
