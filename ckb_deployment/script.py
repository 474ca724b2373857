"""
CKB script helpers: hashing, molecule serialization of Script, the
secp256k1/blake160 multisig script layout and full-format (bech32m) addresses.
"""
import hashlib
import struct
from typing import List, NamedTuple, Sequence

from eth_typing import HexStr
from eth_utils import encode_hex
from hexbytes import HexBytes

from ckb_deployment.constants import HASH_TYPES
from ckb_deployment.from_info import MultisigFromInfo

CKB_HASH_PERSONALIZATION = b"ckb-default-hash"
BLAKE160_SIZE = 20
MULTISIG_RESERVED = 0x00
FULL_ADDRESS_FORMAT = 0x00

# https://github.com/bitcoin/bips/blob/master/bip-0350.mediawiki
BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
BECH32M_CONST = 0x2BC830A3


class Script(NamedTuple):
    code_hash: HexStr
    hash_type: str
    args: HexStr


def ckb_hash(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32, person=CKB_HASH_PERSONALIZATION).digest()


def blake160(data: bytes) -> bytes:
    return ckb_hash(data)[:BLAKE160_SIZE]


def _hash_type_byte(hash_type: str) -> int:
    try:
        return HASH_TYPES[hash_type]
    except KeyError:
        raise ValueError(f"Unknown hash type '{hash_type}'")


def serialize_script(script: Script) -> bytes:
    """Molecule encoding of the Script table (code_hash: Byte32, hash_type: byte, args: Bytes)."""
    code_hash = bytes(HexBytes(script.code_hash))
    if len(code_hash) != 32:
        raise ValueError(f"code_hash must be 32 bytes, got {len(code_hash)}")
    args = bytes(HexBytes(script.args))

    fields = [
        code_hash,
        bytes([_hash_type_byte(script.hash_type)]),
        struct.pack("<I", len(args)) + args,
    ]
    header_size = 4 * (len(fields) + 1)
    offsets = []
    offset = header_size
    for field in fields:
        offsets.append(offset)
        offset += len(field)

    header = struct.pack("<I", offset) + b"".join(struct.pack("<I", o) for o in offsets)
    return header + b"".join(fields)


def compute_script_hash(script: Script) -> HexStr:
    return encode_hex(ckb_hash(serialize_script(script)))


def serialize_multisig_script(from_info: MultisigFromInfo) -> HexStr:
    """0x00 | R | M | N | blake160(pubkey) * N"""
    hashes = b""
    for public_key_hash in from_info.public_key_hashes:
        value = bytes(HexBytes(public_key_hash))
        if len(value) != BLAKE160_SIZE:
            raise ValueError(f"Public key hash {public_key_hash} must be {BLAKE160_SIZE} bytes")
        hashes += value

    header = bytes(
        [
            MULTISIG_RESERVED,
            from_info.require_first_n,
            from_info.threshold,
            len(from_info.public_key_hashes),
        ]
    )
    return encode_hex(header + hashes)


def multisig_lock_args(from_info: MultisigFromInfo) -> HexStr:
    multisig_script = bytes(HexBytes(serialize_multisig_script(from_info)))
    return encode_hex(blake160(multisig_script))


#
# Bech32m
#


def _polymod(values: Sequence[int]) -> int:
    generators = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
    chk = 1
    for value in values:
        top = chk >> 25
        chk = ((chk & 0x1FFFFFF) << 5) ^ value
        for i in range(5):
            if (top >> i) & 1:
                chk ^= generators[i]
    return chk


def _hrp_expand(hrp: str) -> List[int]:
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def _convertbits(data: bytes, from_bits: int, to_bits: int) -> List[int]:
    acc, bits, result = 0, 0, []
    maxv = (1 << to_bits) - 1
    for value in data:
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            result.append((acc >> bits) & maxv)
    if bits:
        result.append((acc << (to_bits - bits)) & maxv)
    return result


def bech32m_encode(hrp: str, payload: bytes) -> str:
    data = _convertbits(payload, 8, 5)
    polymod = _polymod(_hrp_expand(hrp) + data + [0] * 6) ^ BECH32M_CONST
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]
    return hrp + "1" + "".join(BECH32_CHARSET[d] for d in data + checksum)


def script_to_address(script: Script, prefix: str) -> str:
    """Full-format address: 0x00 | code_hash | hash_type | args."""
    payload = (
        bytes([FULL_ADDRESS_FORMAT])
        + bytes(HexBytes(script.code_hash))
        + bytes([_hash_type_byte(script.hash_type)])
        + bytes(HexBytes(script.args))
    )
    return bech32m_encode(prefix, payload)
