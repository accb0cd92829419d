"""Low-bits-first field extraction over 256-bit words."""

from __future__ import annotations

WORD_BITS = 256
WORD_MAX = (1 << WORD_BITS) - 1

_FIXED_WIDTHS = frozenset({8, 16, 32, 64})


def check_word(value: int, *, name: str = "word") -> int:
    """Return *value* unchanged if it is an unsigned 256-bit integer."""

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0 or value > WORD_MAX:
        raise ValueError(f"{name} is not an unsigned 256-bit integer: {value:#x}")
    return value


class BitFieldReader:
    """Cursor that pops unsigned fields from the low bits of one word.

    The backing value is never modified; reading only advances ``offset``.
    Once the declared fields of a layout are read, :meth:`remainder_is_zero`
    tells whether the word carried anything beyond them.
    """

    __slots__ = ("_value", "_offset")

    def __init__(self, value: int) -> None:
        self._value = check_word(value)
        self._offset = 0

    @property
    def value(self) -> int:
        return self._value

    @property
    def offset(self) -> int:
        """Number of bits consumed so far."""

        return self._offset

    def _pop(self, width: int) -> int:
        field = (self._value >> self._offset) & ((1 << width) - 1)
        self._offset += width
        return field

    def pop_uint(self, width: int) -> int:
        """Return the next ``width`` bits, ``width`` being 8, 16, 32 or 64."""

        if width not in _FIXED_WIDTHS:
            raise ValueError(f"unsupported field width: {width}")
        return self._pop(width)

    def pop_uint8(self) -> int:
        return self._pop(8)

    def pop_uint16(self) -> int:
        return self._pop(16)

    def pop_uint32(self) -> int:
        return self._pop(32)

    def pop_uint64(self) -> int:
        return self._pop(64)

    def pop_uint160(self) -> int:
        """Return the next 160 bits, the width of an Ethereum address."""

        return self._pop(160)

    def remainder(self) -> int:
        """Return every unread bit as one integer."""

        return self._value >> self._offset

    def remainder_is_zero(self) -> bool:
        return self.remainder() == 0

    def __repr__(self) -> str:
        return f"BitFieldReader(value={self._value:#x}, offset={self._offset})"
