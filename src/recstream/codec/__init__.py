"""Record codecs: the serialize/deserialize pair applied to byte streams."""

from recstream.codec.base import BaseCodec
from recstream.codec.jsonstream import JsonCodec
from recstream.exceptions import ConfigError

__all__ = [
    "BaseCodec",
    "JsonCodec",
    "get_codec",
]

_CODEC_MAP: dict[str, type[BaseCodec]] = {
    "json": JsonCodec,
}


def get_codec(codec_name: str, read_size: int | None = None) -> BaseCodec:
    """Return a codec instance for the given codec name.

    Args:
        codec_name: Codec identifier (e.g. ``"json"``).
        read_size: Bytes requested from the stream per read, if overriding
            the codec default.

    Raises:
        ConfigError: If no codec is registered for the given name.
    """
    cls = _CODEC_MAP.get(codec_name)
    if cls is None:
        raise ConfigError(f"No codec named {codec_name!r}. Available: {sorted(_CODEC_MAP)}")
    if read_size is None:
        return cls()
    return cls(read_size=read_size)  # type: ignore[call-arg]
