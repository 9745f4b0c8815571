"""HTTP port definition (DTO)."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

__all__ = ["HttpRequestDto"]


@dataclass(slots=True, frozen=True)
class HttpRequestDto:
    """One outbound delivery attempt.

    Decouples the dispatcher's host selection from the HTTP implementation.

    Attributes:
        host: Destination host the attempt targets.
        method: HTTP method shared by every host.
        url: Absolute plain-HTTP URL built from host and context path.
        headers: Header name to ordered list of values.
        body: Decompressed payload bytes.
    """

    host: str
    method: str
    url: str
    headers: Mapping[str, Sequence[str]]
    body: bytes
