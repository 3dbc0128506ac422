#!/usr/bin/env python3
"""
Key splitting, shard verification, lagrange coefficients and threshold signing sessions.
"""
import itertools
import os

import pytest

from pyschnorr import (ThresholdSession, key_split, verify_shard, shard_pubkey, lagrange_coefficient,
                       combine_pub_coefficients, threshold_pubkey, schnorr_verify, pubkey_gen,
                       ValidationError, VerificationError)
from pyschnorr.utils import (curve, point_mul, bytes_from_int, int_from_bytes, bytes_from_point,
                             bytes_from_point_compressed)

SECKEY = 'B7E151628AED2A6ABF7158809CF4F3C762E7160F38B4DA56A784D9045190CFEF'
SECKEY_ODD_Y = 'C90FDAA22168C234C4C6628B80DC1CD129024E088A67CC74020BBEA63B14E5C7'
MSG = bytes.fromhex('243F6A8885A308D313198A2E03707344A4093822299F31D0082EFA98EC4E6C89')


def reconstruct(indices, shards):
    d = 0
    for position, idx in enumerate(indices):
        coefficient = lagrange_coefficient(indices, len(indices), position)
        d = (d + coefficient * int_from_bytes(shards[idx])) % curve.n
    return d


def test_key_split_layout():
    split = key_split(SECKEY, 3, 5)
    assert len(split.shards) == 5
    assert len(split.pub_coefficients) == 3
    assert all(len(shard) == 32 for shard in split.shards)
    assert all(len(c) == 33 for c in split.pub_coefficients)
    assert split.pub_coefficients[0] == bytes_from_point_compressed(point_mul(curve.G, int(SECKEY, 16)))
    assert key_split(int(SECKEY, 16), 3, 5) == split


def test_key_split_depends_on_threshold():
    assert key_split(SECKEY, 2, 5).shards != key_split(SECKEY, 3, 5).shards
    assert key_split(SECKEY, 2, 3).shards != key_split(SECKEY, 2, 4).shards[:3]


@pytest.mark.parametrize('k, n', [(1, 1), (2, 3), (3, 5), (4, 4)])
def test_any_k_shards_reconstruct_the_key(k, n):
    split = key_split(SECKEY, k, n)
    for indices in itertools.combinations(range(n), k):
        assert reconstruct(list(indices), split.shards) == int(SECKEY, 16)


def test_fewer_than_k_shards_do_not_reconstruct_the_key():
    split = key_split(SECKEY, 3, 5)
    assert reconstruct([0, 4], split.shards) != int(SECKEY, 16)


@pytest.mark.parametrize('k, n', [(2, 3), (4, 5)])
def test_verify_shard(k, n):
    split = key_split(SECKEY, k, n)
    for i in range(n):
        assert verify_shard(split.shards[i], i, split.pub_coefficients)
        assert shard_pubkey(split.pub_coefficients, i) == \
            bytes_from_point_compressed(point_mul(curve.G, int_from_bytes(split.shards[i])))


def test_verify_shard_fails_on_wrong_shard():
    split = key_split(SECKEY, 3, 4)
    with pytest.raises(VerificationError) as exc:
        verify_shard(split.shards[1], 2, split.pub_coefficients)
    assert exc.value.index == 2
    bad = bytes_from_int((int_from_bytes(split.shards[0]) + 1) % curve.n)
    with pytest.raises(VerificationError):
        verify_shard(bad, 0, split.pub_coefficients)
    other = key_split(SECKEY[::-1], 3, 4)
    with pytest.raises(VerificationError):
        verify_shard(split.shards[0], 0, other.pub_coefficients)


def test_key_split_checks_params():
    with pytest.raises(ValidationError):
        key_split(0, 2, 3)
    with pytest.raises(ValidationError):
        key_split(SECKEY, 4, 3)
    with pytest.raises(ValidationError):
        key_split(SECKEY, 0, 3)


def test_lagrange_coefficient():
    # two shards at x = 1 and x = 2: l1 = 2, l2 = -1
    assert lagrange_coefficient([0, 1], 2, 0) == 2
    assert lagrange_coefficient([0, 1], 2, 1) == curve.n - 1
    # only the first num_signers indices are used
    assert lagrange_coefficient([0, 1, 2], 2, 0) == 2
    assert lagrange_coefficient([3], 1, 0) == 1


def test_lagrange_coefficient_checks_params():
    with pytest.raises(ValidationError, match='unique'):
        lagrange_coefficient([1, 1], 2, 0)
    with pytest.raises(ValidationError):
        lagrange_coefficient([0, 1], 2, 2)
    with pytest.raises(ValidationError):
        lagrange_coefficient([0, 1], 3, 0)
    with pytest.raises(ValidationError):
        lagrange_coefficient([], 1, 0)


def test_combine_pub_coefficients():
    seckeys = [SECKEY, SECKEY_ODD_Y]
    splits = [key_split(seckey, 2, 3) for seckey in seckeys]
    combined = combine_pub_coefficients([split.pub_coefficients for split in splits])
    for i in range(3):
        shard = sum(int_from_bytes(split.shards[i]) for split in splits) % curve.n
        assert verify_shard(bytes_from_int(shard), i, combined)
    with pytest.raises(ValidationError):
        combine_pub_coefficients([splits[0].pub_coefficients, key_split(SECKEY, 3, 3).pub_coefficients])


def sign_with_shards(split, indices, msg):
    combined_pk, pre_session = threshold_pubkey(split.pub_coefficients)
    sessions = []
    for position, idx in enumerate(indices):
        sessions.append(ThresholdSession(os.urandom(32), indices, position, split.shards[idx], combined_pk,
                                         pre_session, msg))
    commitments = [session.get_nonce_commitment() for session in sessions]
    nonces = [session.get_public_nonce(commitments) for session in sessions]
    for session in sessions:
        session.combine_nonces(nonces)
    sigs = [session.partial_sign() for session in sessions]
    for position, idx in enumerate(indices):
        pubkey = shard_pubkey(split.pub_coefficients, idx)
        assert sessions[0].partial_sig_verify(sigs[position], pubkey, position)
    return combined_pk, sessions[-1].partial_sig_combine(sigs)


@pytest.mark.parametrize('indices', [[0, 1], [0, 2], [2, 1]])
def test_threshold_signature_verifies(indices):
    split = key_split(SECKEY, 2, 3)
    assert not threshold_pubkey(split.pub_coefficients)[1]['is_negated']
    combined_pk, sig = sign_with_shards(split, indices, MSG)
    assert combined_pk == pubkey_gen(SECKEY)
    assert schnorr_verify(MSG, combined_pk, sig)


@pytest.mark.parametrize('k, n, indices', [(2, 3, [0, 1]), (2, 3, [2, 0]), (2, 3, [1, 2]), (4, 5, [4, 0, 3, 1])])
def test_threshold_signature_odd_key(k, n, indices):
    split = key_split(SECKEY_ODD_Y, k, n)
    combined_pk, pre_session = threshold_pubkey(split.pub_coefficients)
    # every signer has to negate its weighted shard
    assert pre_session['is_negated']
    combined_pk, sig = sign_with_shards(split, indices, MSG)
    assert combined_pk == pubkey_gen(SECKEY_ODD_Y)
    assert schnorr_verify(MSG, combined_pk, sig)


def test_threshold_signature_random_key():
    seckey = os.urandom(32)
    msg = os.urandom(32)
    split = key_split(seckey, 3, 4)
    combined_pk, sig = sign_with_shards(split, [3, 0, 2], msg)
    assert combined_pk == bytes_from_point(point_mul(curve.G, int_from_bytes(seckey)))
    assert schnorr_verify(msg, combined_pk, sig)


def test_threshold_session_rejects_duplicate_indices():
    split = key_split(SECKEY, 2, 3)
    combined_pk, pre_session = threshold_pubkey(split.pub_coefficients)
    with pytest.raises(ValidationError):
        ThresholdSession(os.urandom(32), [1, 1], 0, split.shards[1], combined_pk, pre_session, MSG)
