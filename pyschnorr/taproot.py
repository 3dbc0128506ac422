#!/usr/bin/env python3

from .utils import *

TAPTWEAK_TAG = 'TapTweak'


def taproot_construct(pubkey, scripts=None):
    """
    Compute the x-only output key Q = P + hash_TapTweak(x(P) || h)*G.

    pubkey is the internal key as point, 33 byte compressed or 32 byte x-only key.
    Without scripts h is empty, which commits to an unspendable script path. A
    single 32 byte script digest (merkle root) is used as h directly.
    """

    if isinstance(pubkey, tuple):
        Px = bytes_from_point(pubkey)
    elif isinstance(pubkey, (bytes, bytearray)) and len(pubkey) == 33:
        Px = bytes_from_point(point_from_compressed_bytes(pubkey, 'internalPubKey'))
    else:
        check_bytes('internalPubKey', pubkey, 32)
        Px = bytes(pubkey)
    P = point_from_bytes(Px, 'internalPubKey')

    if isinstance(scripts, (bytes, bytearray)):
        scripts = [scripts] if scripts else []
    if not scripts:
        h = b''
    elif len(scripts) == 1:
        check_bytes('script', scripts[0], 32, 0)
        h = bytes(scripts[0])
    else:
        raise ValidationError('Only a single script digest is supported.', 'scripts')

    tweak = int_from_bytes(tagged_hash(TAPTWEAK_TAG, Px + h))
    if tweak >= curve.n:
        raise ProtocolError('The tweak is outside of the group order.', 'tweak')
    Q = point_add(P, point_mul(curve.G, tweak))
    if is_infinity(Q):
        raise PointError('The output key is the point at infinity.', 'outputKey')
    return bytes_from_point(Q)
