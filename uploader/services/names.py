"""Random stored file names."""

import secrets

from beartype import beartype

from uploader.core.errors import NameGenerationError


@beartype
def make_random_name(n_bytes: int, suffix: str) -> str:
    """Return the lowercase hex of ``n_bytes`` secure random bytes followed by ``suffix``.

    No collision retry is done, exclusive create on the storage side turns a
    collision into an error instead of an overwrite.
    """
    try:
        token = secrets.token_bytes(n_bytes)
    except (OSError, NotImplementedError) as ex:
        raise NameGenerationError() from ex
    return token.hex() + suffix


@beartype
def file_extension(filename: str) -> str:
    """Extension of the base name, from its last dot, e.g. ``.gz`` for ``a.tar.gz``."""
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""
