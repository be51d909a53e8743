"""Fixed-stride encoding of log file id lists for the bundle index.

A bundle record is the plain concatenation of each member's 26-character
canonical ULID text, in bundle order. There is no header or separator, so
the member count is ``len(data) // STRIDE``.
"""

from common.utils import parse_ulid

from logstore.exceptions import EmptyInput, MalformedId, Misaligned, Truncated

STRIDE = 26


def encode_ids(ids):
    """Encode an ordered, non-empty sequence of ULIDs.

    Args:
        ids: Sequence of ``ulid.ULID`` instances.

    Returns:
        bytes of length ``len(ids) * STRIDE``.

    Raises:
        EmptyInput: If ``ids`` has no elements.
    """
    ids = list(ids)
    if not ids:
        raise EmptyInput()
    return b"".join(str(file_id).encode("ascii") for file_id in ids)


def decode_ids(data):
    """Decode bytes produced by ``encode_ids`` back into ULIDs.

    Args:
        data: bytes (or str) read from the index.

    Returns:
        list of ``ulid.ULID`` in encoded order.

    Raises:
        Truncated: If ``data`` is shorter than one stride.
        Misaligned: If the length is not a multiple of the stride.
        MalformedId: If any stride is not a valid ULID.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    length = len(data)
    if length < STRIDE:
        raise Truncated(length, STRIDE)
    if length % STRIDE != 0:
        raise Misaligned(length, STRIDE)

    ids = []
    for offset in range(0, length, STRIDE):
        chunk = data[offset : offset + STRIDE]
        try:
            ids.append(parse_ulid(chunk))
        except ValueError as exc:
            raise MalformedId(offset, bytes(chunk)) from exc
    return ids
