#!/usr/bin/env python3
"""
MuSig key aggregation and the interactive three round signing session.

Round order for every signer:
    1. exchange nonce commitments  (get_nonce_commitment)
    2. exchange public nonces      (get_public_nonce, combine_nonces)
    3. exchange partial signatures (partial_sign, partial_sig_verify, partial_sig_combine)
A public nonce is only released once the commitments of all signers are known.
"""
import enum
import logging

from .utils import *
from .schnorr import challenge, deterministic_nonce

logger = logging.getLogger(__name__)

MUSIG_TAG = 'MuSig coefficient'
PRE_SESSION_MAGIC = 0xf4adbbdf7c7dd304


def _check_pubkeys(pubkeys):
    check_array('pubKeys', pubkeys)
    seen = set()
    for i in range(len(pubkeys)):
        check_bytes('pubKey', pubkeys[i], 32, i)
        if bytes(pubkeys[i]) in seen:
            raise ValidationError('pubKeys must be unique. index: {}'.format(i), 'pubKeys', i)
        seen.add(bytes(pubkeys[i]))

def compute_ell(pubkeys):
    """Computes ell = SHA256(pk[0], ..., pk[np-1])"""

    _check_pubkeys(pubkeys)
    return hash_sha256(b''.join(pubkeys))

def compute_coefficient(ell, idx):
    """Compute r = hash_coefficient(ell, idx). The four bytes of idx are serialized least significant byte first."""

    check_bytes('ell', ell, 32)
    if isinstance(idx, bool) or not isinstance(idx, int) or not (0 <= idx < 2**32):
        raise ValidationError('idx must be an integer in the range 0..2^32-1.', 'idx')
    return int_from_bytes(tagged_hash(MUSIG_TAG, ell + idx.to_bytes(4, byteorder="little"))) % curve.n

def pub_key_combine(pubkeys, ell=None):
    """
    Compute X = (r[0]*X[0]) + (r[1]*X[1]) + ..., + (r[n]*X[n])

    Returns the combined point; its x coordinate is the public key.
    """

    _check_pubkeys(pubkeys)
    if ell is None:
        ell = compute_ell(pubkeys)
    P = None
    for i in range(len(pubkeys)):
        P_i = point_from_bytes(pubkeys[i], 'pubKey', i)
        coefficient = compute_coefficient(ell, i)
        P = point_add(P, point_mul(P_i, coefficient))
    if is_infinity(P):
        raise PointError('The combined public key is the point at infinity.', 'pubKeys')
    return P


class CombinedPubkey:
    """
    This class represents a combined public key for all participating signers.

    In order to create a combined public key all separate public keys needs provided in advance.
    !!!The order/index of the public keys needs to be the same as in the MuSig session.!!!
    """

    @staticmethod
    def create_pre_session(pk_hash, is_negated, pre_session_magic=PRE_SESSION_MAGIC):
        """Creates a dictionary with fixed state values."""

        pre_session = dict()
        pre_session['pre_session_magic'] = pre_session_magic
        pre_session['pk_hash'] = pk_hash
        pre_session['is_negated'] = is_negated
        return pre_session

    def __init__(self, pubkeys, pk_hash=None):
        ell = pk_hash or compute_ell(pubkeys)
        P = pub_key_combine(pubkeys, ell)
        self.__combined_pk = bytes_from_point(P)
        self.__pre_session = CombinedPubkey.create_pre_session(ell, not has_even_y(P))

    def get_key(self):
        """Return the combined x-only public key."""

        return self.__combined_pk

    def get_pre_session(self):
        """Return the pre-session dictionary."""

        return self.__pre_session

    def __str__(self):
        return 'combined public key: {} \nis negated?: {}'.format(self.__combined_pk.hex(),
                                                                 self.__pre_session['is_negated'])


def musig_non_interactive(seckeys, msg):
    """
    Create a MuSig signature for a single party holding all secret keys.

    The signature verifies against CombinedPubkey(pubkeys).get_key() for the
    x-only public keys of seckeys in the same order.
    """

    check_array('privateKeys', seckeys)
    check_bytes('message', msg, 32)
    secrets = [normalize_private_key(seckey, 'privateKey', i) for i, seckey in enumerate(seckeys)]
    points = [point_mul(curve.G, secret) for secret in secrets]
    pubkeys = [bytes_from_point(P_i) for P_i in points]
    ell = compute_ell(pubkeys)
    X = pub_key_combine(pubkeys, ell)

    R = None
    nonces = []
    for i in range(len(secrets)):
        secret = get_even_key(points[i], secrets[i])
        k_i = deterministic_nonce(secret, pubkeys[i], msg)
        nonces.append(k_i)
        R = point_add(R, point_mul(curve.G, k_i))
    if is_infinity(R):
        raise ProtocolError('The combined nonce is the point at infinity.', 'nonce')

    e = challenge(bytes_from_point(R), bytes_from_point(X), msg)
    s = 0
    for i in range(len(secrets)):
        secret = get_even_key(points[i], secrets[i])
        secret = (compute_coefficient(ell, i) * secret) % curve.n
        secret = get_even_key(X, secret)
        s = (s + get_even_key(R, nonces[i]) + e * secret) % curve.n
    return bytes_from_point(R) + bytes_from_int(s)


def nonce_combine(nonces):
    """Compute R = R[0] + R[1] + ..., + R[n] from x-only public nonces."""

    check_array('nonces', nonces)
    R = None
    for i in range(len(nonces)):
        R = point_add(R, point_from_bytes(nonces[i], 'nonce', i))
    if is_infinity(R):
        raise PointError('The combined nonce is the point at infinity.', 'nonces')
    return R

def partial_sig_combine(combined_nonce, sigs):
    """
    Compute the sum of all signature from an array of partial signatures.

    s_sum = s[0] + s[1] + ...  + s[n]
    """

    check_bytes('nonceCombined', combined_nonce, 32)
    check_array('partialSigs', sigs)
    s_sum = 0
    for i in range(len(sigs)):
        check_bytes('partialSig', sigs[i], 32, i)
        s = int_from_bytes(sigs[i])
        if s >= curve.n:
            raise ScalarOverflowError('The signature is outside of the group order. index: {}'.format(i),
                                      'partialSig', i)
        s_sum = (s_sum + s) % curve.n
    return bytes(combined_nonce) + bytes_from_int(s_sum)


class SessionState(enum.IntEnum):
    INITIALIZED = 1
    COMMITTED = 2
    NONCE_COMBINED = 3
    PARTIAL_SIGNED = 4
    COMBINED = 5


class MuSigSession:
    """
    One signer's view of a multi signature session with n_signers participants.

    The session is owned by a single signer. Commitments, public nonces and partial
    signatures are exchanged by the caller; each method checks that the previous
    round has been completed before it runs.
    """

    def __init__(self, session_id32, n_signers, my_index, seckey, combined_pk, pre_session, msg32):
        """
        Parameters
        ----------
        session_id32 : 32 byte array, must never be reused
        n_signers : number of participants
        my_index : index of this signer in the list of participants
        seckey : secret key as int, hex string or 32 byte array
        combined_pk : 32 byte x-only combined public key
        pre_session : dictionary from CombinedPubkey.get_pre_session()
        msg32 : 32 byte message
        """

        if isinstance(n_signers, bool) or not isinstance(n_signers, int) or n_signers <= 0:
            raise ValidationError('Amount of signers must be a positive integer.', 'n_signers')
        if n_signers > 2**32:
            raise ValidationError('Amount of signers is too large.', 'n_signers')
        if isinstance(my_index, bool) or not isinstance(my_index, int) or not (0 <= my_index < n_signers):
            raise ValidationError('my_index must be an index into the list of participants.', 'my_index')
        if pre_session.get('pre_session_magic') != PRE_SESSION_MAGIC:
            raise ValidationError('Session magic has a wrong value.', 'pre_session')
        check_bytes('sessionId', session_id32, 32)
        check_bytes('message', msg32, 32)
        check_bytes('pubKeyCombined', combined_pk, 32)
        secret = normalize_private_key(seckey)

        self.__n_signers = n_signers
        self.__my_index = my_index
        self.__msg = bytes(msg32)
        self.__combined_pk = bytes(combined_pk)
        self.__pre_session = pre_session
        self.__commitments = None
        self.__nonces = None
        self.__combined_nonce = None
        self.__nonce_is_negated = None
        self.__partial_sig = None

        # 1 compute secret key (x * a_i)
        coefficient = self._coefficient(my_index)
        X = point_mul(curve.G, secret)
        own_negated = self._own_key_negated(X)
        sk = curve.n - secret if own_negated != self.__pre_session['is_negated'] else secret
        self.__seckey = (coefficient * sk) % curve.n

        # 2 compute secret nonce
        # DONT use a deterministic nonce! The session id has to be unique.
        self.__secnonce = int_from_bytes(hash_sha256(session_id32 + msg32 + combined_pk + bytes_from_int(secret)))
        if is_secret_overflow(self.__secnonce):
            raise ProtocolError('The nonce is outside of the group order.', 'secretNonce')

        # 3 compute public nonce and commitment
        R = point_mul(curve.G, self.__secnonce)
        self.__nonce_parity = not has_even_y(R)
        self.__nonce = bytes_from_point(R)
        self.__nonce_commitment = hash_sha256(self.__nonce)
        self.state = SessionState.INITIALIZED
        logger.debug('session initialized for signer %d of %d', my_index, n_signers)

    def _coefficient(self, idx):
        """Return the key weight of the signer at idx."""

        return compute_coefficient(self.__pre_session['pk_hash'], idx)

    def _own_key_negated(self, X):
        # x-only keys are lifted to even y in the key aggregation
        return not has_even_y(X)

    def _signer_point(self, pubkey, idx):
        return point_from_bytes(pubkey, 'pubKey', idx)

    def _require(self, state, message):
        if self.state < state:
            raise ProtocolError(message, 'session')

    @property
    def n_signers(self):
        return self.__n_signers

    @property
    def my_index(self):
        return self.__my_index

    @property
    def secret_key(self):
        return self.__seckey

    @property
    def secret_nonce(self):
        return self.__secnonce

    @property
    def nonce_parity(self):
        return self.__nonce_parity

    @property
    def nonce_is_negated(self):
        return self.__nonce_is_negated

    @property
    def combined_nonce(self):
        return self.__combined_nonce

    @property
    def partial_sig(self):
        return self.__partial_sig

    def get_nonce_commitment(self):
        """Return the nonce commitment for this signer."""

        return self.__nonce_commitment

    def get_public_nonce(self, commitments):
        """Receive an array of nonce commitments(H(x(R))) from all signers and return the public nonce(x(R))."""

        if len(commitments) != self.__n_signers:
            raise ValidationError('The number of commitments is incomplete.', 'commitments')
        for i in range(self.__n_signers):
            check_bytes('commitment', commitments[i], 32, i)
        if commitments[self.__my_index] != self.__nonce_commitment:
            raise CommitmentVerifyError('The own commitment is missing from the commitments. index: {}'
                                        .format(self.__my_index), 'commitment', self.__my_index)
        commitments = [bytes(c) for c in commitments]
        if self.__commitments is not None and commitments != self.__commitments:
            raise CommitmentVerifyError('get_public_nonce has been called before with a different set of commitments.',
                                        'commitments')

        self.__commitments = commitments
        if self.state < SessionState.COMMITTED:
            self.state = SessionState.COMMITTED
            logger.debug('signer %d collected %d commitments', self.__my_index, self.__n_signers)
        return self.__nonce

    def combine_nonces(self, nonces):
        """
        Receive the public nonces of all signers, check them against their commitments
        and compute R = R[0] + R[1] + ..., + R[n].

        Returns x(R).
        """

        self._require(SessionState.COMMITTED, 'The nonce commitments must be known before combining the nonces.')
        if self.state >= SessionState.PARTIAL_SIGNED:
            raise ProtocolError('The nonces can not be combined again after partial signing.', 'session')
        if len(nonces) != self.__n_signers:
            raise ValidationError('The number of nonces is incomplete.', 'nonces')
        for i in range(self.__n_signers):
            check_bytes('nonce', nonces[i], 32, i)
            if hash_sha256(nonces[i]) != self.__commitments[i]:
                raise CommitmentVerifyError('The nonce of one or more signers doesn\'t match the commitment. index: {}'
                                            .format(i), 'nonce', i)
        R = nonce_combine(nonces)

        self.__nonces = [bytes(nonce) for nonce in nonces]
        self.__combined_nonce = bytes_from_point(R)
        self.__nonce_is_negated = not has_even_y(R)
        self.state = SessionState.NONCE_COMBINED
        logger.debug('signer %d combined %d nonces', self.__my_index, self.__n_signers)
        return self.__combined_nonce

    def partial_sign(self):
        """Compute s = k + e*x with the own secret key and secret nonce."""

        self._require(SessionState.NONCE_COMBINED, 'The combined nonce is missing.')
        if self.state >= SessionState.COMBINED:
            raise ProtocolError('The session is already combined.', 'session')
        e = challenge(self.__combined_nonce, self.__combined_pk, self.__msg)
        k = self.__secnonce
        if self.__nonce_parity != self.__nonce_is_negated:
            k = curve.n - k
        s = (self.__seckey * e + k) % curve.n
        self.__partial_sig = bytes_from_int(s)
        self.state = SessionState.PARTIAL_SIGNED
        logger.debug('signer %d created its partial signature', self.__my_index)
        return self.__partial_sig

    def partial_sig_verify(self, sig, pubkey, i):
        """Check s[i]*G == R[i] + (e*a[i])*P[i] for the partial signature of signer i."""

        self._require(SessionState.NONCE_COMBINED, 'The combined nonce is missing.')
        if isinstance(i, bool) or not isinstance(i, int) or not (0 <= i < self.__n_signers):
            raise ValidationError('i must be an index into the list of participants.', 'idx')
        check_bytes('partialSig', sig, 32, i)
        s = int_from_bytes(sig)
        if s >= curve.n:
            raise ScalarOverflowError('The signature is outside of the group order. index: {}'.format(i),
                                      'partialSig', i)

        coefficient = self._coefficient(i)
        e = challenge(self.__combined_nonce, self.__combined_pk, self.__msg)
        P_i = self._signer_point(pubkey, i)
        if self.__pre_session['is_negated']:
            P_i = point_neg(P_i)
        R_i = point_from_bytes(self.__nonces[i], 'nonce', i)
        if self.__nonce_is_negated:
            R_i = point_neg(R_i)
        expected = point_add(R_i, point_mul(P_i, (e * coefficient) % curve.n))
        if point_mul(curve.G, s) != expected:
            raise VerificationError('partial signature verification failed. index: {}'.format(i), 'partialSig', i)
        return True

    def partial_sig_combine(self, sigs):
        """Combine the partial signatures of all signers into the final signature."""

        self._require(SessionState.NONCE_COMBINED, 'The combined nonce is missing.')
        if len(sigs) != self.__n_signers:
            raise ValidationError('The number of signatures is not equal the signing parties.', 'partialSigs')
        sig = partial_sig_combine(self.__combined_nonce, sigs)
        self.state = SessionState.COMBINED
        logger.debug('signer %d combined %d partial signatures', self.__my_index, self.__n_signers)
        return sig
