"""Checksum service: tagged content digests for integrity comparison.

Digests are recorded as ``<algorithm>:<hexdigest>``. Verification re-hashes
with the algorithm named in the recorded value, so a header written under one
algorithm still verifies after the preferred algorithm changes. Untagged hex
digests from older artifacts are recognised by length.

Only equality matters here; nothing relies on collision resistance.
"""

from __future__ import annotations

import hashlib

PREFERRED_ALGORITHM = "sha256"
FALLBACK_ALGORITHM = "md5"

# hex length → algorithm, for untagged legacy digests
_LEGACY_LENGTHS: dict[int, str] = {64: "sha256", 32: "md5"}


class UnknownAlgorithm(ValueError):
    """Raised when a digest names an algorithm hashlib cannot provide."""


def is_fixed_length(algorithm: str) -> bool:
    """True if hashlib provides *algorithm* with a fixed-size digest.

    The SHAKE family needs an output length at digest time and cannot be used.
    """
    try:
        return hashlib.new(algorithm).digest_size > 0
    except ValueError:
        return False


def resolve_algorithm(preferred: str = PREFERRED_ALGORITHM) -> str:
    """Return *preferred* if hashlib provides it with a fixed digest size, else the fallback."""
    if is_fixed_length(preferred):
        return preferred
    return FALLBACK_ALGORITHM


def checksum(data: bytes, algorithm: str = PREFERRED_ALGORITHM) -> str:
    """Return the tagged digest of *data*.

    The exact byte stream is hashed; callers decide whether a trailing
    newline is part of it.
    """
    algo = resolve_algorithm(algorithm)
    return f"{algo}:{_hexdigest(data, algo)}"


def _to_bytes(text: str) -> bytes:
    # surrogateescape restores the original bytes of non-UTF-8 sources
    return text.encode("utf-8", "surrogateescape")


def checksum_text(text: str, algorithm: str = PREFERRED_ALGORITHM) -> str:
    return checksum(_to_bytes(text), algorithm)


def split_digest(recorded: str) -> tuple[str, str]:
    """Split a recorded digest into ``(algorithm, hexdigest)``.

    Raises:
        UnknownAlgorithm: untagged value of unrecognised length.
    """
    recorded = recorded.strip()
    if ":" in recorded:
        algo, _, hexd = recorded.partition(":")
        return algo.lower(), hexd.lower()
    algo = _LEGACY_LENGTHS.get(len(recorded))
    if algo is None:
        raise UnknownAlgorithm(f"Cannot tell which algorithm produced digest '{recorded}'.")
    return algo, recorded.lower()


def matches(recorded: str, data: bytes) -> bool:
    """Return True if *data* hashes to *recorded* under its own algorithm."""
    if not recorded:
        return False
    algo, hexd = split_digest(recorded)
    return _hexdigest(data, algo) == hexd


def matches_text(recorded: str, text: str) -> bool:
    return matches(recorded, _to_bytes(text))


def _hexdigest(data: bytes, algo: str) -> str:
    try:
        h = hashlib.new(algo)
    except ValueError as exc:
        raise UnknownAlgorithm(f"Checksum algorithm '{algo}' is not available.") from exc
    if h.digest_size == 0:
        raise UnknownAlgorithm(f"Checksum algorithm '{algo}' has no fixed digest size.")
    h.update(data)
    return h.hexdigest()
