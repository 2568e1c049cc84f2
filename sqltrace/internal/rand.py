"""Generator for span and trace identifiers.

``random.getrandbits`` is backed by the module level Mersenne Twister and is
safe to call from several threads. The state is reseeded in forked children so
that parent and child processes never produce the same sequence of ids.
"""
import os
import random


_rand = random.Random()


def rand64bits():
    # type: () -> int
    """Return a non-zero pseudorandom 64-bit integer."""
    value = _rand.getrandbits(64)
    while not value:
        value = _rand.getrandbits(64)
    return value


def seed():
    # type: () -> None
    _rand.seed()


if hasattr(os, "register_at_fork"):
    os.register_at_fork(after_in_child=seed)
