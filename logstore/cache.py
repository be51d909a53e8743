"""Cache backend helpers for the bundle index.

The index shares its Redis database with other consumers that read the
``stagedLogs:`` and ``logBundles:`` namespaces directly, so keys and values
are written without Django's key prefixing or pickling.
"""


def make_key(key, key_prefix, version):
    """KEY_FUNCTION that leaves keys untouched."""
    return key


class RawSerializer:
    """Redis serializer storing bytes and text as-is."""

    def dumps(self, obj):
        # Django's RedisCacheClient expects ints to be left unserialized.
        if type(obj) is int:
            return obj
        if isinstance(obj, str):
            return obj.encode("utf-8")
        if isinstance(obj, bytes | bytearray | memoryview):
            return bytes(obj)
        raise TypeError(f"Cannot store {type(obj).__name__} in the bundle index.")

    def loads(self, data):
        return data
