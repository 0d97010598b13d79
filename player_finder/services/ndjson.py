"""Incremental newline-delimited JSON framing."""

import codecs


class NdjsonDecoder:
    """Split an arbitrarily chunked byte stream into complete NDJSON lines.

    ``feed`` only ever returns lines whose terminating newline has arrived.
    The trailing fragment is kept until the next chunk (or ``flush``), so
    the lines produced do not depend on where the chunk boundaries fall.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._buffer

    def feed(self, chunk: bytes | str) -> list[str]:
        """Add a chunk and return every line completed by it.

        Args:
            chunk: Raw bytes from the stream, or already-decoded text

        Returns:
            Complete non-blank lines, stripped of surrounding whitespace
        """
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        if not text:
            return []

        *complete, self._buffer = (self._buffer + text).split("\n")
        return [line.strip() for line in complete if line.strip()]

    def flush(self) -> list[str]:
        """Signal end of stream and return the final unterminated line, if any."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        self._decoder.reset()
        tail = tail.strip()
        return [tail] if tail else []
