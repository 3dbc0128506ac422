#!/usr/bin/env python3

from .utils import *

NONCE_TAG = "BIP0340/nonce"
AUX_TAG = "BIP0340/aux"
CHALLENGE_TAG = "BIP0340/challenge"


def challenge(r32, pubkey32, msg):
    """Compute e = hash_challenge(r || x(P) || m) mod n."""

    return int_from_bytes(tagged_hash(CHALLENGE_TAG, r32 + pubkey32 + msg)) % curve.n

def deterministic_nonce(seckey, pubkey32, msg):
    """Compute k' = hash_nonce(d || x(P) || m) mod n without auxiliary randomness."""

    k0 = int_from_bytes(tagged_hash(NONCE_TAG, bytes_from_int(seckey) + pubkey32 + msg)) % curve.n
    if k0 == 0:
        raise ProtocolError('Failure. This happens only with negligible probability.', 'nonce')
    return k0

def schnorr_sign(msg, seckey0, aux_rand=None):
    """Sign a message with a secret key."""

    check_bytes('message', msg, 32)
    seckey0 = normalize_private_key(seckey0)
    P = point_mul(curve.G, seckey0)
    seckey = get_even_key(P, seckey0)
    if aux_rand is None:
        k0 = deterministic_nonce(seckey, bytes_from_point(P), msg)
    else:
        check_bytes('aux', aux_rand, 32)
        t = xor_bytes(bytes_from_int(seckey), tagged_hash(AUX_TAG, aux_rand))
        k0 = int_from_bytes(tagged_hash(NONCE_TAG, t + bytes_from_point(P) + msg)) % curve.n
        if k0 == 0:
            raise ProtocolError('Failure. This happens only with negligible probability.', 'nonce')
    R = point_mul(curve.G, k0)
    k = get_even_key(R, k0)
    e = challenge(bytes_from_point(R), bytes_from_point(P), msg)
    return bytes_from_point(R) + bytes_from_int((k + e * seckey) % curve.n)


def check_signature_input(r, s, index=None):
    if r >= curve.p:
        raise ValidationError('r is larger than or equal to field size.', 'signature', index)
    if s >= curve.n:
        raise ValidationError('s is larger than or equal to curve order.', 'signature', index)

def schnorr_verify(msg, pubkey, sig):
    """Verify that a message was indeed signed with a specific secret key."""

    check_bytes('pubKey', pubkey, 32)
    check_bytes('message', msg, 32)
    check_bytes('signature', sig, 64)
    r = int_from_bytes(sig[0:32])
    s = int_from_bytes(sig[32:64])
    check_signature_input(r, s)
    P = point_from_bytes(pubkey)
    e = challenge(sig[0:32], pubkey, msg)
    R = point_add(point_mul(curve.G, s), point_mul(P, (curve.n - e) % curve.n))
    if R is None or not has_even_y(R) or x(R) != r:
        raise VerificationError('signature verification failed')
    return True


def schnorr_batch_verify(msgs, pubkeys, sigs):
    """
    Verify an array of signatures at once.

    Checks (s[0] + a[1]*s[1] + ...)*G == R[0] + e[0]*P[0] + a[1]*R[1] + a[1]*e[1]*P[1] + ...
    with fresh random coefficients a[i] drawn from 1..n-1.
    """

    check_array('pubKeys', pubkeys)
    check_array('messages', msgs)
    check_array('signatures', sigs)
    if len(pubkeys) != len(msgs) or len(msgs) != len(sigs):
        raise ValidationError('All parameters must be lists with the same length.')
    for i in range(len(pubkeys)):
        check_bytes('pubKey', pubkeys[i], 32, i)
        check_bytes('message', msgs[i], 32, i)
        check_bytes('signature', sigs[i], 64, i)

    s_sum = 0
    RP = None
    for i in range(len(msgs)):
        pubkey = pubkeys[i]
        msg = msgs[i]
        sig = sigs[i]
        r = int_from_bytes(sig[0:32])
        s = int_from_bytes(sig[32:64])
        check_signature_input(r, s, i)
        P = point_from_bytes(pubkey, 'pubKey', i)
        e = challenge(sig[0:32], pubkey, msg)
        R = lift_x(r, 'signature', i)

        a = 1 if i == 0 else random_scalar()
        s_sum = (s_sum + a * s) % curve.n
        aR = point_mul(R, a)
        eP = point_mul(P, (a * e) % curve.n)
        RP = point_add(RP, point_add(aR, eP))
    if point_mul(curve.G, s_sum) != RP:
        raise VerificationError('signature verification failed')
    return True


def naive_key_aggregation(seckeys, msg):
    """
    Sign a message with the plain sum of several secret keys.

    The result verifies against x(P[0] + P[1] + ...). Without key coefficients the
    sum is open to key cancellation, MuSig aggregation should be used instead.
    """

    check_array('privateKeys', seckeys)
    check_bytes('message', msg, 32)
    secrets = [normalize_private_key(seckey, 'privateKey', i) for i, seckey in enumerate(seckeys)]
    P = None
    R = None
    nonces = []
    for secret in secrets:
        P_i = point_mul(curve.G, secret)
        k_i = deterministic_nonce(get_even_key(P_i, secret), bytes_from_point(P_i), msg)
        nonces.append(k_i)
        P = point_add(P, P_i)
        R = point_add(R, point_mul(curve.G, k_i))
    if is_infinity(P):
        raise PointError('The combined public key is the point at infinity.', 'privateKeys')
    if is_infinity(R):
        raise ProtocolError('The combined nonce is the point at infinity.', 'nonce')
    seckey = get_even_key(P, sum(secrets) % curve.n)
    e = challenge(bytes_from_point(R), bytes_from_point(P), msg)
    s = 0
    for k_i in nonces:
        s = (s + get_even_key(R, k_i)) % curve.n
    s = (s + e * seckey) % curve.n
    return bytes_from_point(R) + bytes_from_int(s)
