"""
Schnorr signatures for secp256k1 in Python

BIP340 signing and (batch) verification, MuSig key aggregation and its
interactive signing session, threshold signatures on top of Shamir secret
sharing and the Taproot output key tweak.

BIP340: https://github.com/bitcoin/bips/blob/master/bip-0340.mediawiki
MuSig paper: https://eprint.iacr.org/2018/068

Javascript implementation:
https://github.com/guggero/bip-schnorr
"""
from .utils import (SchnorrError, ValidationError, ScalarOverflowError, PointError,
                    VerificationError, ProtocolError, CommitmentVerifyError,
                    pubkey_gen, tagged_hash, lift_x)
from .schnorr import schnorr_sign, schnorr_verify, schnorr_batch_verify, naive_key_aggregation
from .musig import (CombinedPubkey, MuSigSession, SessionState, compute_ell, compute_coefficient,
                    pub_key_combine, musig_non_interactive, nonce_combine, partial_sig_combine)
from .threshold import (ThresholdSession, key_split, verify_shard, shard_pubkey, lagrange_coefficient,
                        combine_pub_coefficients, threshold_pubkey)
from .chacha20 import seed_to_scalar_values
from .taproot import taproot_construct
from .version import __version__
