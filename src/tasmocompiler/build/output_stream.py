"""
Streaming of build tool output.

The build tool writes to stdout and stderr independently. One reader thread
per pipe pushes raw chunks onto a shared queue; the session thread is the
only consumer, so the output buffer has a single writer and chunks keep
their arrival order across both pipes.

Design:
    pipe reader (stdout) --\\
                            +--> queue --> session --> OutputBuffer --> sink
    pipe reader (stderr) --/
"""

import codecs
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import IO, List, Optional

READ_CHUNK_SIZE = 4096


class OutputBuffer:
    """Batches output chunks to bound how often messages are emitted.

    Chunks are collected until ``threshold`` of them are buffered; the caller
    then drains the buffer and emits its concatenation as one message. No
    chunk is ever dropped.
    """

    def __init__(self, threshold: int = 5):
        """Initialize buffer.

        Args:
            threshold: Number of chunks that triggers a flush
        """
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self._chunks: List[str] = []

    def __len__(self) -> int:
        return len(self._chunks)

    def append(self, chunk: str) -> bool:
        """Add a chunk.

        Returns:
            True if the buffer is full and should be drained
        """
        self._chunks.append(chunk)
        return len(self._chunks) >= self.threshold

    def drain(self) -> str:
        """Return the concatenated chunks and clear the buffer."""
        text = "".join(self._chunks)
        self._chunks = []
        return text


@dataclass
class OutputChunk:
    """A piece of output read from one of the pipes.

    Attributes:
        stream: 'stdout' or 'stderr'
        data: Raw bytes; None marks the end of the stream
    """

    stream: str
    data: Optional[bytes] = field(default=None)

    @property
    def is_eof(self) -> bool:
        return self.data is None


class PipeMerger:
    """Reads several pipes concurrently and hands out their chunks in arrival order."""

    def __init__(self, chunk_size: int = READ_CHUNK_SIZE):
        self.chunk_size = chunk_size
        self._queue: "queue.Queue[OutputChunk]" = queue.Queue()
        self._threads: List[threading.Thread] = []
        self._open_streams = 0

    def _pump(self, name: str, pipe: IO[bytes]) -> None:
        reader = getattr(pipe, "read1", None) or pipe.read
        try:
            while True:
                data = reader(self.chunk_size)
                if not data:
                    break
                self._queue.put(OutputChunk(name, data))
        except (OSError, ValueError) as e:
            # Pipe closed underneath us, treat as end of stream
            logging.debug(f"Reading {name} stopped: {e}")
        finally:
            self._queue.put(OutputChunk(name, None))

    def start(self, **pipes: Optional[IO[bytes]]) -> None:
        """Start one reader thread per pipe, e.g. ``start(stdout=p.stdout)``."""
        for name, pipe in pipes.items():
            if pipe is None:
                continue
            thread = threading.Thread(
                target=self._pump,
                args=(name, pipe),
                name=f"tasmocompiler-{name}-reader",
                daemon=True,
            )
            self._threads.append(thread)
            self._open_streams += 1
            thread.start()

    def get(self, timeout: Optional[float] = None) -> Optional[OutputChunk]:
        """Block until the next data chunk arrives.

        Args:
            timeout: Seconds to wait for a chunk (default: wait forever)

        Returns:
            The next chunk, or None once every started pipe reached end of
            stream

        Raises:
            queue.Empty: If no chunk arrived within timeout
        """
        while self._open_streams:
            chunk = self._queue.get(timeout=timeout)
            if chunk.is_eof:
                self._open_streams -= 1
                continue
            return chunk
        return None

    def is_reading(self) -> bool:
        """Return True while any reader thread is still blocked on its pipe."""
        return any(thread.is_alive() for thread in self._threads)

    def join(self, timeout: Optional[float] = None) -> None:
        for thread in self._threads:
            thread.join(timeout)


class StreamDecoder:
    """Decodes per-stream bytes to text without splitting multibyte characters."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._decoders = {}

    def decode(self, chunk: OutputChunk) -> str:
        decoder = self._decoders.get(chunk.stream)
        if decoder is None:
            decoder = codecs.getincrementaldecoder(self.encoding)(errors="replace")
            self._decoders[chunk.stream] = decoder
        return decoder.decode(chunk.data or b"")

    def finish(self) -> str:
        """Return whatever is left in the decoders once all pipes are closed."""
        tail = "".join(decoder.decode(b"", final=True) for decoder in self._decoders.values())
        self._decoders = {}
        return tail
