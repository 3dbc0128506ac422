#!/usr/bin/env python3
"""
Deterministic scalar generator on top of the ChaCha20 block function.

Only the block function is used, nothing is ever encrypted. The 16 word state is

    constants | seed[0..7] | idx | 0 | 0 | overflow count

which is the RFC 7539 layout with idx as block counter and the overflow count in
the last nonce word. Every output word is serialized big-endian and the 64 bytes
are read as two 256 bit scalars. If one of them is 0 or not below the group order
the overflow count is incremented and the block is computed again.
"""
import logging
import struct

from chacha20poly1305 import ChaCha

from .utils import *

logger = logging.getLogger(__name__)


def chacha20_block(seed, idx, overflow_count=0):
    """Return the 64 output bytes of one block, each word big-endian."""

    nonce = bytes(8) + overflow_count.to_bytes(4, byteorder="little")
    key_stream = ChaCha(seed, nonce).key_stream(idx)
    words = struct.unpack('<16L', bytes(key_stream))
    return struct.pack('>16L', *words)

def seed_to_scalar_values(seed, idx):
    """
    Compute the two scalars for block idx of seed.

    A 16-byte seed is padded with zeros to the 32-byte ChaCha20 key.
    """

    if not isinstance(seed, (bytes, bytearray)) or len(seed) not in (16, 32):
        raise ValidationError('seed must be a 16-byte or 32-byte array.', 'seed')
    if isinstance(idx, bool) or not isinstance(idx, int) or not (0 <= idx < 2**32):
        raise ValidationError('idx must be an integer in the range 0..2^32-1.', 'idx')
    key = bytes(seed).ljust(32, b'\x00')

    for overflow_count in range(MAX_SAMPLING_ATTEMPTS):
        block = chacha20_block(key, idx, overflow_count)
        r1 = int_from_bytes(block[:32])
        r2 = int_from_bytes(block[32:])
        if not is_secret_overflow(r1) and not is_secret_overflow(r2):
            return [r1, r2]
        logger.debug('block %d overflowed the group order, overflow count %d', idx, overflow_count)
    raise ProtocolError('No scalars in range after {} blocks.'.format(MAX_SAMPLING_ATTEMPTS))
