#!/usr/bin/env python3

import collections
import hashlib
import logging
import os
import re

EllipticCurve = collections.namedtuple('EllipticCurve', 'name p G n h')

curve = EllipticCurve(
    'secp256k1',
    # Field characteristic.
    p=0xfffffffffffffffffffffffffffffffffffffffffffffffffffffffefffffc2f,
    # Base point.
    G=(0x79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798,
       0x483ada7726a3c4655da4fbfc0e1108a8fd17b448a68554199c47d08ffb10d4b8),
    # Subgroup order.
    n=0xfffffffffffffffffffffffffffffffebaaedce6af48a03bbfd25e8cd0364141,
    # Subgroup cofactor.
    h=1,
)

# Upper bound for every rejection sampling loop.
MAX_SAMPLING_ATTEMPTS = 256

logger = logging.getLogger(__name__)


class SchnorrError(Exception):
    """
    Base class for all errors of this package.

    field and index name the offending input, never its value.
    """

    def __init__(self, message, field=None, index=None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.index = index

    def __str__(self):
        return self.message


class ValidationError(SchnorrError, ValueError):
    pass

class ScalarOverflowError(ValidationError):
    pass

class PointError(SchnorrError, ValueError):
    pass

class VerificationError(SchnorrError):
    pass

class ProtocolError(SchnorrError, RuntimeError):
    pass

class CommitmentVerifyError(ProtocolError):
    pass


def _name(field, index):
    return field if index is None else '{}[{}]'.format(field, index)

def x(P):
    return P[0]

def y(P):
    return P[1]

def point_add(P1, P2):
    if (P1 is None):
        return P2
    if (P2 is None):
        return P1
    if (P1[0] == P2[0] and P1[1] != P2[1]):
        return None
    if (P1 == P2):
        lam = (3 * P1[0] * P1[0] * pow(2 * P1[1], curve.p - 2, curve.p)) % curve.p
    else:
        lam = ((P2[1] - P1[1]) * pow(P2[0] - P1[0], curve.p - 2, curve.p)) % curve.p
    x3 = (lam * lam - P1[0] - P2[0]) % curve.p
    return (x3, (lam * (P1[0] - x3) - P1[1]) % curve.p)


def point_mul(P, n):
    R = None
    for i in range(256):
        if ((n >> i) & 1):
            R = point_add(R, P)
        P = point_add(P, P)
    return R

def point_neg(P):
    if is_infinity(P):
        return P
    return (x(P), curve.p - y(P))

def bytes_from_int(x):
    return x.to_bytes(32, byteorder="big")

def bytes_from_point(P):
    return bytes_from_int(x(P))

def bytes_from_point_compressed(P):
    return (b'\x02' if has_even_y(P) else b'\x03') + bytes_from_point(P)

def xor_bytes(b0: bytes, b1: bytes) -> bytes:
    return bytes(x ^ y for (x, y) in zip(b0, b1))

def lift_x(x, field='x', index=None):
    """Return the point with x coordinate x and an even y coordinate."""

    if x >= curve.p:
        raise PointError('{} is larger than or equal to field size.'.format(_name(field, index)), field, index)
    c = (pow(x, 3, curve.p) + 7) % curve.p
    y = pow(c, (curve.p + 1) // 4, curve.p)
    if pow(y, 2, curve.p) != c:
        raise PointError('{} is not on the curve, c is not equal to y^2.'.format(_name(field, index)), field, index)
    return (x, y if y & 1 == 0 else curve.p - y)

def point_from_bytes(b, field='pubKey', index=None):
    check_bytes(field, b, 32, index)
    return lift_x(int_from_bytes(b), field, index)

def point_from_compressed_bytes(b, field='pubKey', index=None):
    check_bytes(field, b, 33, index)
    if b[0] not in (2, 3):
        raise PointError('{} has an invalid parity prefix.'.format(_name(field, index)), field, index)
    P = lift_x(int_from_bytes(b[1:]), field, index)
    return P if b[0] == 2 else point_neg(P)

def int_from_bytes(b):
    return int.from_bytes(b, byteorder="big")

def hash_sha256(b):
    return hashlib.sha256(b).digest()

def tagged_hash(tag, msg):
    tag_hash = hash_sha256(tag.encode())
    return hash_sha256(tag_hash + tag_hash + msg)

def is_infinity(P):
    return P is None

def has_even_y(P) -> bool:
    assert not is_infinity(P)
    return y(P) % 2 == 0

def get_even_key(P, k):
    """Return k or n - k, whichever belongs to the even y variant of P = k*G."""

    return k if has_even_y(P) else curve.n - k

def is_secret_overflow(x):
    return not (1 <= x <= curve.n - 1)

def check_bytes(field, b, length, index=None):
    if not isinstance(b, (bytes, bytearray)):
        raise ValidationError('{} must be a byte array.'.format(_name(field, index)), field, index)
    if len(b) != length:
        raise ValidationError('{} must be a {}-byte array.'.format(_name(field, index), length), field, index)

def check_array(field, arr):
    if not arr:
        raise ValidationError('{} must be a list with one or more elements.'.format(field), field)

def check_range(field, scalar, index=None):
    if is_secret_overflow(scalar):
        raise ScalarOverflowError('{} must be an integer in the range 1..n-1.'.format(_name(field, index)),
                                  field, index)

def normalize_private_key(seckey, field='privateKey', index=None):
    """
    Accept a private key as int, hex string or 32-byte array and return it as int.

    Raises ValidationError for anything else and ScalarOverflowError outside 1..n-1.
    """

    if isinstance(seckey, bool):
        raise ValidationError('{} must be an int, a hex string or a 32-byte array.'.format(_name(field, index)),
                              field, index)
    if isinstance(seckey, int):
        secret = seckey
    elif isinstance(seckey, str):
        if not re.fullmatch('[0-9a-fA-F]+', seckey):
            raise ValidationError('{} must be a valid hex string.'.format(_name(field, index)), field, index)
        secret = int(seckey, 16)
    elif isinstance(seckey, (bytes, bytearray)):
        check_bytes(field, seckey, 32, index)
        secret = int_from_bytes(seckey)
    else:
        raise ValidationError('{} must be an int, a hex string or a 32-byte array.'.format(_name(field, index)),
                              field, index)
    check_range(field, secret, index)
    return secret

def random_scalar():
    """Draw a uniformly random scalar from 1..n-1."""

    for _ in range(MAX_SAMPLING_ATTEMPTS):
        a = int_from_bytes(os.urandom(32))
        if not is_secret_overflow(a):
            return a
        logger.debug('random scalar outside of the group order, drawing again')
    raise ProtocolError('No scalar in range after {} draws.'.format(MAX_SAMPLING_ATTEMPTS))

def pubkey_gen(seckey):
    x = normalize_private_key(seckey)
    P = point_mul(curve.G, x)
    return bytes_from_point(P)

def pubkey_gen_compressed(seckey):
    x = normalize_private_key(seckey)
    P = point_mul(curve.G, x)
    return bytes_from_point_compressed(P)
