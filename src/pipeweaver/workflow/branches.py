"""Working branch naming."""

import secrets
import string

BRANCH_PREFIX = "pipeline-update-"
BRANCH_SUFFIX_LENGTH = 5
BRANCH_ALPHABET = string.ascii_letters + string.digits


def generate_branch_name(
    prefix: str = BRANCH_PREFIX,
    length: int = BRANCH_SUFFIX_LENGTH,
) -> str:
    """Return prefix followed by length random alphanumeric characters.

    Characters come from the OS CSPRNG, so names for concurrent events
    collide with probability 1 / 62**length.

    Example:
        >>> generate_branch_name()  # doctest: +SKIP
        'pipeline-update-q3ZbT'
    """
    if length < 1:
        raise ValueError(f"Branch suffix length must be positive, got {length}")
    suffix = "".join(secrets.choice(BRANCH_ALPHABET) for _ in range(length))
    return f"{prefix}{suffix}"
