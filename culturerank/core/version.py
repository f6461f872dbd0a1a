from abc import ABC
from packaging.version import InvalidVersion, Version
from typing import ClassVar, Final


__all__ = [
    "Version",
    "Versioned",
    "ALGORITHM_ID",
    "ALGORITHM_VERSION",
    "CONTRACT_VERSION",
    "check_contract_version",
]

ALGORITHM_ID: Final[str] = "bunkarium-culture-rank"
ALGORITHM_VERSION: Final[Version] = Version("1.0.0")
CONTRACT_VERSION: Final[Version] = Version("1.0")


class Versioned(ABC):
    VERSION: ClassVar[Version]

    @classmethod
    def version(cls) -> Version:
        return cls.VERSION

    def __init_subclass__(cls) -> None:
        super().__init_subclass__()
        if getattr(cls, "__abstractmethods__", None):
            return
        v = getattr(cls, "VERSION", None)
        if not isinstance(v, Version):
            raise TypeError(
                f"{cls.__name__}.VERSION must be 'packaging.version.Version'"
            )


def check_contract_version(requested: str) -> Version:
    """Parse a request's contract version; only the major component must match."""
    try:
        v = Version(requested)
    except InvalidVersion as e:
        raise ValueError(f"invalid contract version: {requested!r}") from e
    if v.major != CONTRACT_VERSION.major:
        raise ValueError(
            f"incompatible contract version: {requested} != {CONTRACT_VERSION}"
        )
    return v
