import random
import string

ALPHABETS = {
    "numeric": string.digits,
    "alphabet": string.ascii_letters,
    "max": string.digits + string.ascii_lowercase + string.ascii_uppercase + "_-",
}


def generate(size: int, alphabet: str = "numeric", custom: str | None = None) -> str:
    """Return ``size`` characters drawn uniformly, with replacement, from an alphabet.

    ``custom`` overrides the named alphabet. Uses the process-wide ``random``
    source, so the result is not suitable as a secret.
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")

    if custom is not None:
        chars = custom
    else:
        try:
            chars = ALPHABETS[alphabet]
        except KeyError:
            raise ValueError(f"Unknown alphabet: {alphabet}")

    if not chars:
        raise ValueError("alphabet must not be empty")

    return "".join(random.choice(chars) for _ in range(size))
