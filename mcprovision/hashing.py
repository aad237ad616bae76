from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping
import hashlib

HASH_CHUNK_SIZE = 1024 * 1024


class HashAlgorithm(str, Enum):
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"

    @property
    def digest_size(self) -> int:
        return _DIGEST_SIZES[self]

    def new(self):
        return hashlib.new(self.value)

    def __str__(self) -> str:
        return self.value


_DIGEST_SIZES = {
    HashAlgorithm.SHA1: 20,
    HashAlgorithm.SHA256: 32,
    HashAlgorithm.SHA512: 64,
}


def to_hex(data: bytes) -> str:
    return data.hex()


def from_hex(text: str) -> bytes:
    """Decode a hex string, rejecting odd lengths and non-hex digits."""
    if len(text) % 2 != 0:
        raise ValueError(f"Invalid hex string length {len(text)}: expected an even length.")
    for char in text:
        if char not in "0123456789abcdefABCDEF":
            raise ValueError(f"Invalid character {char!r} in hex string.")
    return bytes.fromhex(text)


def hash_bytes(data: bytes, algorithm: HashAlgorithm) -> bytes:
    digest = algorithm.new()
    digest.update(data)
    return digest.digest()


def hash_file(path: Path, algorithm: HashAlgorithm) -> bytes:
    digest = algorithm.new()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.digest()


@dataclass(frozen=True, slots=True)
class HashWithAlgorithm:
    algorithm: HashAlgorithm
    hash: bytes

    def __post_init__(self) -> None:
        if len(self.hash) != self.algorithm.digest_size:
            raise ValueError(
                f"Expected a {self.algorithm.digest_size}-byte digest for {self.algorithm}, "
                f"got {len(self.hash)} bytes."
            )

    @classmethod
    def from_hex(cls, algorithm: HashAlgorithm | str, text: str) -> HashWithAlgorithm:
        algorithm = HashAlgorithm(algorithm)
        expected_length = algorithm.digest_size * 2
        if len(text) != expected_length:
            raise ValueError(
                f"Invalid hex string length {len(text)}: expected {expected_length} for {algorithm}."
            )
        return cls(algorithm=algorithm, hash=from_hex(text))

    @property
    def hex(self) -> str:
        return to_hex(self.hash)

    def matches_file(self, path: Path) -> bool:
        try:
            return hash_file(path, self.algorithm) == self.hash
        except OSError:
            return False

    def to_dict(self) -> dict[str, Any]:
        return {"algorithm": self.algorithm.value, "hash": self.hex}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HashWithAlgorithm:
        return cls.from_hex(str(data["algorithm"]), str(data["hash"]))

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.hex}"
