# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""An in-process pipe with a fixed byte capacity.

The pipe connects a producer thread to a consumer that expects a file-like
object, such as a database driver streaming a local file. Writes block while
the pipe is full, reads block while it is empty, and closing the write end
signals end-of-stream to the reader. Aborting the write end makes the reader
raise instead, so a failed producer is never mistaken for a complete stream.
Closing the read end makes any pending or future write fail with
:class:`BrokenPipeError`, so a producer can never stay blocked after the
consumer has gone away.
"""

import io
import threading

DEFAULT_PIPE_BUFFER_SIZE = 524288


class _ByteChannel:
    """Shared state of both pipe ends, guarded by a single condition."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._buffer = bytearray()
        self._cond = threading.Condition()
        self._write_closed = False
        self._read_closed = False
        self._abort_error: BaseException | None = None

    def put(self, data: bytes) -> None:
        offset = 0
        with self._cond:
            while offset < len(data):
                while not self._read_closed and len(self._buffer) >= self.capacity:
                    self._cond.wait()
                if self._read_closed:
                    msg = "read end of the pipe is closed"
                    raise BrokenPipeError(msg)
                room = self.capacity - len(self._buffer)
                chunk = data[offset : offset + room]
                self._buffer += chunk
                offset += len(chunk)
                self._cond.notify_all()

    def get(self, size: int) -> bytes:
        with self._cond:
            while not self._buffer and not self._write_closed and not self._read_closed:
                self._cond.wait()
            if self._abort_error is not None:
                msg = f"write end of the pipe was aborted: {self._abort_error}"
                raise OSError(msg) from self._abort_error
            chunk = bytes(self._buffer[:size])
            del self._buffer[:size]
            if chunk:
                self._cond.notify_all()
            return chunk

    def close_write(self) -> None:
        with self._cond:
            self._write_closed = True
            self._cond.notify_all()

    def abort(self, error: BaseException) -> bool:
        with self._cond:
            if self._read_closed:
                return False
            self._abort_error = error
            self._write_closed = True
            self._buffer.clear()
            self._cond.notify_all()
            return True

    def close_read(self) -> None:
        with self._cond:
            self._read_closed = True
            self._buffer.clear()
            self._cond.notify_all()


class PipeReader(io.RawIOBase):
    """The consuming end of a bounded pipe."""

    def __init__(self, channel: _ByteChannel) -> None:
        super().__init__()
        self._channel = channel

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # noqa: ANN001
        if self.closed:
            msg = "I/O operation on closed pipe"
            raise ValueError(msg)
        view = memoryview(buffer).cast("B")
        if not view:
            return 0
        chunk = self._channel.get(len(view))
        view[: len(chunk)] = chunk
        return len(chunk)

    def close(self) -> None:
        if not self.closed:
            self._channel.close_read()
        super().close()


class PipeWriter(io.RawIOBase):
    """The producing end of a bounded pipe."""

    def __init__(self, channel: _ByteChannel) -> None:
        super().__init__()
        self._channel = channel

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:  # noqa: ANN001
        if self.closed:
            msg = "I/O operation on closed pipe"
            raise ValueError(msg)
        payload = bytes(data)
        self._channel.put(payload)
        return len(payload)

    def abort(self, error: BaseException) -> bool:
        """Fail the stream so the reader raises instead of seeing end-of-stream.

        Buffered bytes are discarded. Returns False when the read end was
        already closed and there was nobody left to notify.
        """
        return self._channel.abort(error)

    def close(self) -> None:
        if not self.closed:
            self._channel.close_write()
        super().close()


def open_pipe(capacity: int = DEFAULT_PIPE_BUFFER_SIZE) -> tuple[PipeReader, PipeWriter]:
    """Create a pipe holding at most ``capacity`` bytes in flight.

    Returns:
        A ``(reader, writer)`` pair, in the same order as :func:`os.pipe`.

    """
    if capacity <= 0:
        msg = f"pipe capacity must be greater than 0, got {capacity}"
        raise ValueError(msg)
    channel = _ByteChannel(capacity)
    return PipeReader(channel), PipeWriter(channel)
