import hashlib
import json
import logging
import math
import numpy as np
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Iterable, Mapping, Tuple
from packaging.version import Version
from .rng import fnv1a64
from .version import Versioned

__all__ = [
    "FALLBACK_ALGO",
    "Fingerprint",
    "Fingerprinter",
    "fingerprint_field",
]

logger = logging.getLogger(__name__)

FPItem = Tuple[str, Any]
FPTransform = Callable[[Any], Any]
FALLBACK_ALGO = "fnv1a64"
_FINGERPRINT_META_KEY = "fingerprint_rule"


@dataclass(frozen=True, slots=True)
class _FingerprintRule:
    name: str | None = None
    transform: FPTransform | None = None


def fingerprint_field(
    *,
    name: str | None = None,
    transform: FPTransform | None = None,
    **kw: Any,
):
    meta = dict(kw.pop("metadata", {}) or {})
    meta[_FINGERPRINT_META_KEY] = _FingerprintRule(name=name, transform=transform)
    return field(metadata=meta, **kw)


def _hexdigest(algo: str, payload: bytes) -> tuple[str, str]:
    """Digest with hashlib when `algo` is available, else the FNV-1a 64 fallback."""
    try:
        h = hashlib.new(algo)
    except ValueError:
        logger.warning("hash algorithm %r unavailable, using %s", algo, FALLBACK_ALGO)
        return FALLBACK_ALGO, f"{fnv1a64(payload):016x}"
    h.update(payload)
    return algo, h.hexdigest()


@dataclass(frozen=True, slots=True)
class Fingerprint:
    json_str: str
    algo: str
    hash_len: int
    fqn: str

    def __post_init__(self) -> None:
        if self.hash_len < 8:
            raise ValueError("hash_len must be >= 8")
        if not self.fqn:
            raise ValueError("fqn must be non-empty")

    @property
    def used_algo(self) -> str:
        return self._digest[0]

    @property
    def digest(self) -> str:
        return self._digest[1][: self.hash_len]

    @property
    def _digest(self) -> tuple[str, str]:
        return _hexdigest(self.algo, self.json_str.encode("utf-8"))

    @property
    def key(self) -> str:
        algo, hexdigest = self._digest
        return f"{algo}:{self.hash_len}:{hexdigest[: self.hash_len]}"

    def as_pairs(self) -> list[tuple[str, Any]]:
        raw = json.loads(self.json_str)
        out: list[tuple[str, Any]] = []
        for kv in raw:
            if isinstance(kv, (list, tuple)) and len(kv) == 2:
                k, v = kv
                out.append((str(k), v))
        return out

    @staticmethod
    def from_pairs(
        *,
        head_pairs: Iterable[FPItem],
        attr_pairs_sorted: Iterable[FPItem],
        algo: str,
        hash_len: int,
        fqn: str,
    ) -> "Fingerprint":
        payload = list(head_pairs)
        payload.extend(attr_pairs_sorted)
        json_str = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        return Fingerprint(json_str=json_str, algo=algo, hash_len=hash_len, fqn=fqn)


@dataclass(frozen=True, slots=True)
class Fingerprinter(Versioned):
    """Canonicalizes fingerprint-tagged dataclass fields into sorted JSON and hashes it.

    Floats are rounded to FLOAT_DECIMALS, mappings and nested dataclasses become
    key-sorted pairs, so equal effective configurations always share a digest
    regardless of how they were spelled by the caller.
    """

    VERSION: ClassVar[Version] = Version("1.0.0")
    FLOAT_DECIMALS: ClassVar[int] = 9
    _HEAD_KEYS: ClassVar[tuple[str, ...]] = (
        "__fqn__",
        "__hash_algo__",
        "__fingerprint_ver__",
    )

    hash_algo: str = "sha256"
    hash_len: int = 64

    def __post_init__(self) -> None:
        if self.hash_len < 8:
            raise ValueError("hash_len must be >= 8")

    def make(self, obj: Any, *, extra: Iterable[FPItem] = ()) -> Fingerprint:
        pairs: list[FPItem] = list(self._discover(obj))
        for k, v in extra:
            if k in self._HEAD_KEYS:
                raise ValueError(f"extra key '{k}' collides with header key")
            pairs.append((k, v))

        items_sorted = tuple(
            sorted(((k, self._canon(v)) for k, v in pairs), key=lambda kv: kv[0])
        )
        fqn = self._fqn(obj)
        head: list[FPItem] = [
            ("__fqn__", fqn),
            ("__hash_algo__", self.hash_algo),
            ("__fingerprint_ver__", str(type(self).version())),
        ]
        return Fingerprint.from_pairs(
            head_pairs=head,
            attr_pairs_sorted=items_sorted,
            algo=self.hash_algo,
            hash_len=self.hash_len,
            fqn=fqn,
        )

    def key(self, obj: Any, *, extra: Iterable[FPItem] = ()) -> str:
        return self.make(obj, extra=extra).key

    def _discover(self, obj: Any) -> Iterable[FPItem]:
        if not is_dataclass(obj):
            return
        for f in fields(obj):
            rule: _FingerprintRule | None = (
                f.metadata.get(_FINGERPRINT_META_KEY) if f.metadata else None
            )
            if not rule:
                continue
            name = rule.name or f.name
            if name in self._HEAD_KEYS:
                raise ValueError(
                    f"fingerprint name '{name}' collides with reserved header key"
                )
            val = getattr(obj, f.name, None)
            if rule.transform:
                val = rule.transform(val)
            yield (name, val)

    def _fqn(self, obj_or_cls: Any) -> str:
        cls = obj_or_cls if isinstance(obj_or_cls, type) else type(obj_or_cls)
        mod = getattr(cls, "__module__", "") or ""
        qn = getattr(cls, "__qualname__", getattr(cls, "__name__", "<?>"))
        return f"{mod}.{qn}" if mod else qn

    def _canon_float(self, x: float) -> float | str:
        if math.isnan(x):
            return "nan"
        if math.isinf(x):
            return "inf" if x > 0 else "-inf"
        if x == 0.0:
            return 0.0
        return float(f"{x:.{self.FLOAT_DECIMALS}f}")

    def _canon(self, v: Any) -> Any:
        if v is None or isinstance(v, bool):
            return v
        if isinstance(v, Enum):
            return self._canon(v.value)
        if isinstance(v, (int, np.integer)):
            return int(v)
        if isinstance(v, (float, np.floating)):
            return self._canon_float(float(v))
        if isinstance(v, str):
            return v
        if is_dataclass(v) and not isinstance(v, type):
            return self._canon(asdict(v))
        if isinstance(v, Mapping):
            return tuple(sorted((str(k), self._canon(v[k])) for k in v.keys()))
        if isinstance(v, (list, tuple)):
            return tuple(self._canon(x) for x in v)
        raise TypeError(f"cannot fingerprint value of type {type(v).__name__}")
