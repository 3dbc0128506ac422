#!/usr/bin/env python3
"""
Threshold signatures with Shamir secret sharing and Feldman commitments.

key_split() evaluates f(x) = c[0]*x^(k-1) + ... + c[k-2]*x + d at x = 1..n.
pub_coefficients[m] commits to the coefficient of x^m, so pub_coefficients[0] = d*G.
"""
import collections
import logging

from .utils import *
from .chacha20 import seed_to_scalar_values
from .musig import CombinedPubkey, MuSigSession

logger = logging.getLogger(__name__)

KeySplit = collections.namedtuple('KeySplit', 'shards pub_coefficients')


def _check_count(field, value, minimum):
    if isinstance(value, bool) or not isinstance(value, int) or not (minimum <= value < 2**32):
        raise ValidationError('{} must be an integer in the range {}..2^32-1.'.format(field, minimum), field)

def key_split(seckey, k, n):
    """Split a secret key into n shards of which any k can sign."""

    d = normalize_private_key(seckey)
    _check_count('k', k, 1)
    _check_count('n', n, 1)
    if k > n:
        raise ValidationError('k must not be larger than n.', 'k')

    rng_seed = k.to_bytes(8, byteorder="little") + n.to_bytes(8, byteorder="little")
    rng_seed = hash_sha256(bytes_from_int(d) + rng_seed)
    coefficients = []
    for j in range(k - 1):
        if j % 2 == 0:
            rand = seed_to_scalar_values(rng_seed, j)
        coefficients.append(rand[j % 2])

    shards = []
    for i in range(n):
        shard = 0
        for coefficient in coefficients:
            shard = ((shard + coefficient) * (i + 1)) % curve.n
        shard = (shard + d) % curve.n
        if shard == 0:
            raise ProtocolError('The shard is outside of the group order. index: {}'.format(i), 'shard', i)
        shards.append(bytes_from_int(shard))

    pub_coefficients = [None] * k
    pub_coefficients[0] = bytes_from_point_compressed(point_mul(curve.G, d))
    for j in range(k - 1):
        pub_coefficients[k - j - 1] = bytes_from_point_compressed(point_mul(curve.G, coefficients[j]))
    logger.debug('split key into %d shards with threshold %d', n, k)
    return KeySplit(shards, pub_coefficients)


def _commitment_points(pub_coefficients):
    check_array('pubCoefficients', pub_coefficients)
    return [point_from_compressed_bytes(c, 'pubCoefficient', m) for m, c in enumerate(pub_coefficients)]

def shard_pubkey(pub_coefficients, index):
    """Compute shard[index]*G = sum(pub_coefficients[m] * (index+1)^m) as 33 byte point."""

    _check_count('index', index, 0)
    P = None
    power = 1
    for C in _commitment_points(pub_coefficients):
        P = point_add(P, point_mul(C, power))
        power = (power * (index + 1)) % curve.n
    if is_infinity(P):
        raise PointError('The shard public key is the point at infinity. index: {}'.format(index), 'shard', index)
    return bytes_from_point_compressed(P)

def verify_shard(shard, index, pub_coefficients):
    """Feldman check of a received shard against the dealer's coefficient commitments."""

    s = normalize_private_key(shard, 'shard', index)
    if bytes_from_point_compressed(point_mul(curve.G, s)) != shard_pubkey(pub_coefficients, index):
        raise VerificationError('shard verification failed. index: {}'.format(index), 'shard', index)
    return True

def combine_pub_coefficients(pub_coefficient_sets):
    """Add the commitments of several dealers slot by slot."""

    check_array('pubCoefficients', pub_coefficient_sets)
    k = len(pub_coefficient_sets[0])
    combined = [None] * k
    for i, pub_coefficients in enumerate(pub_coefficient_sets):
        if len(pub_coefficients) != k:
            raise ValidationError('All dealers must use the same threshold. index: {}'.format(i),
                                  'pubCoefficients', i)
        for m, C in enumerate(_commitment_points(pub_coefficients)):
            combined[m] = point_add(combined[m], C)
    if any(is_infinity(C) for C in combined):
        raise PointError('A combined commitment is the point at infinity.', 'pubCoefficients')
    return [bytes_from_point_compressed(C) for C in combined]


def lagrange_coefficient(indices, num_signers, coefficient_index):
    """
    Lagrange basis value at 0 for the shard at position coefficient_index of indices.

    Only the first num_signers entries of indices take part. Shard index i is
    evaluated at x = i + 1.
    """

    check_array('indices', indices)
    _check_count('numSigners', num_signers, 1)
    if num_signers > len(indices):
        raise ValidationError('numSigners is larger than the number of indices.', 'numSigners')
    if isinstance(coefficient_index, bool) or not isinstance(coefficient_index, int) \
            or not (0 <= coefficient_index < num_signers):
        raise ValidationError('coefficientIndex must be a position in indices.', 'coefficientIndex')
    active = indices[:num_signers]
    for j, idx in enumerate(active):
        _check_count('indices', idx, 0)
        if idx in active[:j]:
            raise ValidationError('indices must be unique. index: {}'.format(j), 'indices', j)

    x_i = active[coefficient_index] + 1
    num = 1
    den = 1
    for j in range(num_signers):
        if j == coefficient_index:
            continue
        x_j = active[j] + 1
        num = (num * -x_j) % curve.n
        den = (den * (x_i - x_j)) % curve.n
    return (num * pow(den, curve.n - 2, curve.n)) % curve.n


def threshold_pubkey(pub_coefficients):
    """Return the x-only public key and the pre-session for a shared key."""

    D = _commitment_points(pub_coefficients)[0]
    return bytes_from_point(D), CombinedPubkey.create_pre_session(None, not has_even_y(D))


class ThresholdSession(MuSigSession):
    """
    Signing session of one shard holder among the active signers.

    indices lists the shard index of every active signer; my_index and the
    index passed to partial_sig_verify are positions in that list. Public keys
    of co-signers are their 33 byte shard public keys (see shard_pubkey).
    """

    def __init__(self, session_id32, indices, my_index, seckey, combined_pk, pre_session, msg32):
        check_array('indices', indices)
        self._indices = list(indices)
        # fails early on duplicate or malformed indices
        lagrange_coefficient(self._indices, len(self._indices), 0)
        super().__init__(session_id32, len(self._indices), my_index, seckey, combined_pk, pre_session, msg32)

    def _coefficient(self, idx):
        return lagrange_coefficient(self._indices, len(self._indices), idx)

    def _own_key_negated(self, X):
        # shards add up to the full key, their own parity does not matter
        return False

    def _signer_point(self, pubkey, idx):
        return point_from_compressed_bytes(pubkey, 'pubKey', idx)
