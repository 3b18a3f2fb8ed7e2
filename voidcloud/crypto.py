"""BLAKE3 content hashing for strings, bytes and readable streams."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any

_MASK = 0xFFFFFFFF
_BLOCK_LEN = 64
_CHUNK_LEN = 1024
_READ_SIZE = 64 * 1024

_CHUNK_START = 1 << 0
_CHUNK_END = 1 << 1
_PARENT = 1 << 2
_ROOT = 1 << 3

_IV = (
    0x6A09E667,
    0xBB67AE85,
    0x3C6EF372,
    0xA54FF53A,
    0x510E527F,
    0x9B05688C,
    0x1F83D9AB,
    0x5BE0CD19,
)

_MSG_PERMUTATION = (2, 6, 3, 10, 7, 0, 4, 13, 1, 11, 12, 5, 9, 14, 15, 8)

# Column steps followed by diagonal steps of one round.
_G_SCHEDULE = (
    (0, 4, 8, 12),
    (1, 5, 9, 13),
    (2, 6, 10, 14),
    (3, 7, 11, 15),
    (0, 5, 10, 15),
    (1, 6, 11, 12),
    (2, 7, 8, 13),
    (3, 4, 9, 14),
)


def _rotr(x: int, n: int) -> int:
    return ((x >> n) | (x << (32 - n))) & _MASK


def _g(s: list[int], a: int, b: int, c: int, d: int, mx: int, my: int) -> None:
    s[a] = (s[a] + s[b] + mx) & _MASK
    s[d] = _rotr(s[d] ^ s[a], 16)
    s[c] = (s[c] + s[d]) & _MASK
    s[b] = _rotr(s[b] ^ s[c], 12)
    s[a] = (s[a] + s[b] + my) & _MASK
    s[d] = _rotr(s[d] ^ s[a], 8)
    s[c] = (s[c] + s[d]) & _MASK
    s[b] = _rotr(s[b] ^ s[c], 7)


def _compress(
    cv: tuple[int, ...] | list[int],
    words: tuple[int, ...],
    counter: int,
    block_len: int,
    flags: int,
) -> list[int]:
    state = [
        *cv,
        *_IV[:4],
        counter & _MASK,
        (counter >> 32) & _MASK,
        block_len,
        flags,
    ]
    message = list(words)
    for _ in range(7):
        for (a, b, c, d), mx, my in zip(_G_SCHEDULE, message[0::2], message[1::2]):
            _g(state, a, b, c, d, mx, my)
        message = [message[i] for i in _MSG_PERMUTATION]
    low, high = state[:8], state[8:]
    return [x ^ y for x, y in zip(low, high)] + [x ^ y for x, y in zip(high, cv)]


def _words(block: bytes | bytearray) -> tuple[int, ...]:
    return struct.unpack("<16I", bytes(block).ljust(_BLOCK_LEN, b"\0"))


@dataclass(frozen=True)
class _Output:
    cv: tuple[int, ...]
    words: tuple[int, ...]
    counter: int
    block_len: int
    flags: int

    def chaining_value(self) -> tuple[int, ...]:
        return tuple(_compress(self.cv, self.words, self.counter, self.block_len, self.flags)[:8])

    def root_digest(self) -> bytes:
        out = _compress(self.cv, self.words, 0, self.block_len, self.flags | _ROOT)
        return struct.pack("<8I", *out[:8])


def _parent(left: tuple[int, ...], right: tuple[int, ...]) -> _Output:
    return _Output(_IV, (*left, *right), 0, _BLOCK_LEN, _PARENT)


class _ChunkState:
    def __init__(self, counter: int) -> None:
        self.cv: tuple[int, ...] = _IV
        self.counter = counter
        self.block = bytearray()
        self.blocks_compressed = 0

    def __len__(self) -> int:
        return _BLOCK_LEN * self.blocks_compressed + len(self.block)

    def _start_flag(self) -> int:
        return _CHUNK_START if self.blocks_compressed == 0 else 0

    def update(self, data: memoryview) -> None:
        while len(data):
            if len(self.block) == _BLOCK_LEN:
                words = _words(self.block)
                self.cv = tuple(
                    _compress(self.cv, words, self.counter, _BLOCK_LEN, self._start_flag())[:8]
                )
                self.blocks_compressed += 1
                self.block.clear()
            take = _BLOCK_LEN - len(self.block)
            self.block += data[:take]
            data = data[take:]

    def output(self) -> _Output:
        return _Output(
            self.cv,
            _words(self.block),
            self.counter,
            len(self.block),
            self._start_flag() | _CHUNK_END,
        )


class _Hasher:
    def __init__(self) -> None:
        self._chunk = _ChunkState(0)
        self._stack: list[tuple[int, ...]] = []

    def _push(self, cv: tuple[int, ...], total_chunks: int) -> None:
        while total_chunks & 1 == 0:
            cv = _parent(self._stack.pop(), cv).chaining_value()
            total_chunks >>= 1
        self._stack.append(cv)

    def update(self, data: bytes | bytearray | memoryview) -> None:
        view = memoryview(data).cast("B")
        while len(view):
            if len(self._chunk) == _CHUNK_LEN:
                cv = self._chunk.output().chaining_value()
                total = self._chunk.counter + 1
                self._push(cv, total)
                self._chunk = _ChunkState(total)
            take = _CHUNK_LEN - len(self._chunk)
            self._chunk.update(view[:take])
            view = view[take:]

    def digest(self) -> bytes:
        output = self._chunk.output()
        for cv in reversed(self._stack):
            output = _parent(cv, output.chaining_value())
        return output.root_digest()


def blake3(value: Any) -> str:
    """Return the hex BLAKE3 digest of a string, bytes or a readable stream."""
    hasher = _Hasher()
    if isinstance(value, str):
        hasher.update(value.encode("utf-8"))
    elif isinstance(value, (bytes, bytearray, memoryview)):
        hasher.update(value)
    elif callable(getattr(value, "read", None)):
        while piece := value.read(_READ_SIZE):
            hasher.update(piece.encode("utf-8") if isinstance(piece, str) else piece)
    else:
        raise TypeError(f"unsupported {type(value).__name__}")
    return hasher.digest().hex()