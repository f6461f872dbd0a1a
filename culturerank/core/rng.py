from typing import Final


__all__ = [
    "FNV1A_OFFSET_BASIS",
    "FNV1A_PRIME",
    "fnv1a64",
    "derive_seed",
    "XorShift64",
    "unique_random_indices",
]

MASK64: Final[int] = 0xFFFFFFFFFFFFFFFF
FNV1A_OFFSET_BASIS: Final[int] = 14695981039346656037
FNV1A_PRIME: Final[int] = 1099511628211
_DIVISOR: Final[float] = float(0x100000000)
_BELOW_ONE: Final[float] = 1.0 - 2.0**-53


def fnv1a64(data: str | bytes) -> int:
    """64-bit FNV-1a over the UTF-8 bytes of `data`."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    h: int = FNV1A_OFFSET_BASIS
    for byte in data:
        h ^= byte
        h = (h * FNV1A_PRIME) & MASK64
    return h


def derive_seed(request_seed: str | None, request_id: str) -> int:
    h: int = fnv1a64(request_seed if request_seed else request_id)
    return h if h != 0 else 1


class XorShift64:
    """xorshift64 (13, 7, 17) producing floats in [0, 1) from the low 32 bits."""

    __slots__ = ("state",)

    def __init__(self, seed: int):
        seed &= MASK64
        self.state: int = seed if seed != 0 else 1

    @classmethod
    def from_request(cls, request_seed: str | None, request_id: str) -> "XorShift64":
        return cls(derive_seed(request_seed, request_id))

    def next_u64(self) -> int:
        x: int = self.state
        x ^= (x << 13) & MASK64
        x ^= x >> 7
        x ^= (x << 17) & MASK64
        if x == 0:
            x = 1
        self.state = x
        return x

    def next(self) -> float:
        r: float = (self.next_u64() & 0xFFFFFFFF) / _DIVISOR
        return min(max(r, 0.0), _BELOW_ONE)

    def next_int(self, lo: int, hi: int) -> int:
        """Uniform integer in the inclusive range [lo, hi]."""
        return lo + int(self.next() * (hi - lo + 1))


def unique_random_indices(rng: XorShift64, count: int, lo: int, hi: int) -> list[int]:
    span: int = hi - lo + 1
    if count <= 0 or span <= 0:
        return []
    if count >= span:
        return list(range(lo, hi + 1))
    picked: set[int] = set()
    while len(picked) < count:
        picked.add(rng.next_int(lo, hi))
    return sorted(picked)
