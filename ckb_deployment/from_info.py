from typing import List, NamedTuple, Sequence, Tuple, Union

from eth_utils import is_hex, remove_0x_prefix

from ckb_deployment.constants import MULTISIG_MARKER
from ckb_deployment.errors import InvalidArgument, MissingArgument

MAX_MULTISIG_FIELD = 255
PUBLIC_KEY_HASH_SIZE = 20  # blake160


class SimpleFromInfo(NamedTuple):
    """A single address (or key reference) that authorizes spending."""

    reference: str


class MultisigFromInfo(NamedTuple):
    """
    An R-of-M-of-N threshold group. The order of public_key_hashes is the
    signing order and the order used to derive the multisig script.
    """

    require_first_n: int
    threshold: int
    public_key_hashes: Tuple[str, ...]


FromInfo = Union[SimpleFromInfo, MultisigFromInfo]


def _parse_count(name: str, value) -> int:
    if value is None or not (value.isascii() and value.isdigit()):
        raise InvalidArgument(name=name, value=value, expected="number")
    result = int(value)
    if result > MAX_MULTISIG_FIELD:
        raise InvalidArgument(name=name, value=value, expected=f"number <= {MAX_MULTISIG_FIELD}")
    return result


def _check_public_key_hash(value: str) -> None:
    if not is_hex(value) or len(remove_0x_prefix(value)) != 2 * PUBLIC_KEY_HASH_SIZE:
        raise InvalidArgument(
            name="multisig hashes",
            value=value,
            expected=f"{PUBLIC_KEY_HASH_SIZE}-byte hex string",
        )


def _parse_multisig(tokens: Sequence[str]) -> MultisigFromInfo:
    require_first_n = _parse_count("r", tokens[1] if len(tokens) > 1 else None)
    threshold = _parse_count("m", tokens[2] if len(tokens) > 2 else None)

    hashes = tuple(tokens[3:])
    if not hashes:
        raise MissingArgument("multisig hashes")
    if len(hashes) > MAX_MULTISIG_FIELD:
        raise InvalidArgument(
            name="multisig hashes", value=len(hashes), expected=f"at most {MAX_MULTISIG_FIELD}"
        )

    if require_first_n > threshold:
        raise InvalidArgument(name="r", value=tokens[1], expected=f"number <= m ({threshold})")
    if threshold > len(hashes):
        raise InvalidArgument(
            name="m", value=tokens[2], expected=f"number <= hash count ({len(hashes)})"
        )

    for public_key_hash in hashes:
        _check_public_key_hash(public_key_hash)

    return MultisigFromInfo(
        require_first_n=require_first_n,
        threshold=threshold,
        public_key_hashes=hashes,
    )


def parse_from_info(tokens: Sequence[str]) -> List[FromInfo]:
    """
    Parses --from, --deployer and --fee-payer tokens.

    ["multisig", R, M, hash1, hash2, ...] yields exactly one MultisigFromInfo,
    anything else yields one SimpleFromInfo per token.
    """
    tokens = list(tokens)
    if tokens and tokens[0] == MULTISIG_MARKER:
        return [_parse_multisig(tokens)]
    return [SimpleFromInfo(reference=token) for token in tokens]


def multisig_infos(from_infos: Sequence[FromInfo]) -> List[MultisigFromInfo]:
    return [info for info in from_infos if isinstance(info, MultisigFromInfo)]
