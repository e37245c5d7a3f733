import random

from scriptinterp.script import (
    OP_0, OP_1, OP_2, OP_3, OP_1NEGATE, OP_ADD, OP_EQUAL, OP_RETURN, OP_CHECKSIG, OP_IF,
)


random_ops = [OP_0, OP_1, OP_2, OP_3, OP_1NEGATE, OP_ADD, OP_EQUAL, OP_RETURN,
              OP_CHECKSIG, OP_IF]


def _zeroes():
    # Yields a zero and negative zero
    for size in range(10):
        yield bytes(size)
        yield bytes(size) + b'\x80'


zeroes = list(_zeroes())
non_zeroes = [b'\1', b'\x81', b'\1\0', b'\0\1', b'\0\x81']


def random_script_bytes(size=None):
    if size is None:
        size = random.randrange(0, 40)
    return bytes(random.randrange(0, 256) for _ in range(size))
