"""Deterministic title to folder-id hashing for title-keyed entities."""

from __future__ import annotations

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _to_int32(value: int) -> int:
    value &= _INT32_MASK
    return value - 0x100000000 if value & _INT32_SIGN else value


def title_id(title: str) -> int:
    """Return the non-negative folder id derived from ``title``.

    The title is trimmed and lower-cased, then folded left to right with
    ``h = h * 31 + code_unit`` in 32-bit signed arithmetic. Distinct titles can
    collide; collisions are not detected and map to the same folder.
    """

    value = 0
    for code_unit in _utf16_code_units(title.strip().lower()):
        value = _to_int32((value << 5) - value + code_unit)
    return abs(value)


def _utf16_code_units(text: str) -> list[int]:
    # Characters outside the BMP fold as two surrogate code units.
    encoded = text.encode("utf-16-le", "surrogatepass")
    return [
        int.from_bytes(encoded[index : index + 2], "little")
        for index in range(0, len(encoded), 2)
    ]


__all__ = ["title_id"]
