"""Suppression of repeated analysis of an unchanged screen."""

DEFAULT_PREFIX_LENGTH = 1000

_HASH_MASK = 0xFFFFFFFF


def fingerprint(frame_prefix: str) -> int:
    """Rolling multiplicative hash (h * 31 + c) kept to 32 bits.

    Not a cryptographic hash; collisions only cause a skipped analysis.

    Args:
        frame_prefix: Leading characters of the encoded frame.

    Returns:
        Unsigned 32-bit fingerprint.
    """
    value = 0
    for char in frame_prefix:
        value = (value * 31 + ord(char)) & _HASH_MASK
    return value


class FrameDeduplicator:
    """Remembers the fingerprint of the last accepted frame.

    Only meant for the automatic analysis path. Not thread-safe; the
    orchestrator's single-flight rule guards it.
    """

    def __init__(self, prefix_length: int = DEFAULT_PREFIX_LENGTH) -> None:
        """Initialize the deduplicator.

        Args:
            prefix_length: Number of leading characters that are hashed.
        """
        self._prefix_length = prefix_length
        self._last_fingerprint: int | None = None

    @property
    def prefix_length(self) -> int:
        return self._prefix_length

    @property
    def last_fingerprint(self) -> int | None:
        return self._last_fingerprint

    def should_analyze(self, frame_prefix: str) -> bool:
        """Decide whether a frame is new enough to analyze.

        Args:
            frame_prefix: Encoded frame or its prefix; anything past
                prefix_length is ignored.

        Returns:
            False when the fingerprint equals the last accepted one. Otherwise
            the fingerprint is stored and True is returned.
        """
        current = fingerprint(frame_prefix[: self._prefix_length])
        if current == self._last_fingerprint:
            return False
        self._last_fingerprint = current
        return True

    def reset(self) -> None:
        """Forget the last fingerprint so the next frame is always analyzed."""
        self._last_fingerprint = None
