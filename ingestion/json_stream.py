"""
Constant-memory streaming of top-level JSON array elements.

Bytes are pulled from an HTTP body iterator on demand and fed to ijson, so
only the element currently being parsed is held in memory.
"""

import httpx
import ijson
from typing import Any, AsyncIterator, Callable, Optional

from core.exceptions import StreamError


ErrorCallback = Callable[[BaseException], None]


class AsyncByteReader:
    """
    Adapts an async iterator of byte chunks to the ``async read(size)``
    file interface ijson expects.

    A transport failure is handed to ``on_error`` and then treated as the
    end of the byte stream.
    """

    def __init__(self, chunks: AsyncIterator[bytes], on_error: Optional[ErrorCallback] = None):
        self._chunks = chunks.__aiter__()
        self._on_error = on_error
        self._buffer = bytearray()
        self._exhausted = False
        self.bytes_read = 0
        self.transport_error: Optional[BaseException] = None

    @property
    def exhausted(self) -> bool:
        """True once the underlying chunk iterator has ended."""
        return self._exhausted

    async def read(self, size: int = -1) -> bytes:
        while not self._exhausted and (size < 0 or len(self._buffer) < size):
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                break
            except httpx.TransportError as e:
                self._exhausted = True
                self.transport_error = e
                if self._on_error is not None:
                    self._on_error(e)
                break
            self._buffer.extend(chunk)
            self.bytes_read += len(chunk)

        if size < 0 or size >= len(self._buffer):
            data = bytes(self._buffer)
            self._buffer.clear()
        else:
            data = bytes(self._buffer[:size])
            del self._buffer[:size]
        return data


async def iter_array_elements(
    reader: AsyncByteReader,
    prefix: str = "item",
) -> AsyncIterator[Any]:
    """
    Yield the elements of the top-level JSON array one at a time.

    Numbers come back as ``float``/``int`` rather than ``Decimal``. A body
    that is not an array yields nothing.

    Raises:
        StreamError: If the body is not well-formed JSON (including a body
            cut short by a transport failure)
    """
    try:
        async for element in ijson.items(reader, prefix, use_float=True):
            yield element
    except ijson.JSONError as e:
        raise StreamError(
            "Malformed JSON in source stream",
            context={
                "bytes_read": reader.bytes_read,
                "transport_error": reader.transport_error is not None,
            },
            original_exception=e
        )
