import json
import subprocess
from abc import ABC, abstractmethod
from functools import reduce
from typing import Iterable, List, Optional, Sequence

import click

from ckb_deployment.constants import CKB_CLI, CKB_CLI_MULTISIG, SIGNATURE_MARKER_LENGTH
from ckb_deployment.errors import (
    MissingArgument,
    MissingDependency,
    SigningError,
    UnsupportedSigner,
)


class CredentialSource(ABC):
    """Supplies signing addresses and per-address passwords."""

    @abstractmethod
    def signing_addresses(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def password(self, address: str) -> str:
        raise NotImplementedError


class TerminalCredentialSource(CredentialSource):
    """Prompts on the controlling terminal; passwords are never echoed."""

    def signing_addresses(self) -> List[str]:
        answer = click.prompt(
            "Input the signing addresses or args for sign multisig, separated by spaces",
            default="",
            show_default=False,
        )
        return answer.split()

    def password(self, address: str) -> str:
        return click.prompt(
            f"Input {address}'s password for sign message by ckb-cli",
            hide_input=True,
        )


class StaticCredentialSource(CredentialSource):
    """Returns canned answers; for scripted use and tests."""

    def __init__(self, addresses: Sequence[str] = (), passwords: Optional[dict] = None):
        self._addresses = list(addresses)
        self._passwords = dict(passwords or {})
        self.prompted: List[str] = []

    def signing_addresses(self) -> List[str]:
        return list(self._addresses)

    def password(self, address: str) -> str:
        self.prompted.append(address)
        return self._passwords.get(address, "")


class SigningTool(ABC):
    @abstractmethod
    def sign(self, message: str, address: str, password: str) -> str:
        """Returns a 0x-prefixed recoverable signature."""
        raise NotImplementedError


class CkbCliSigningTool(SigningTool):
    def __init__(self, executable: str = CKB_CLI):
        self.executable = executable

    def sign(self, message: str, address: str, password: str) -> str:
        command = [
            self.executable,
            "util",
            "sign-message",
            "--recoverable",
            "--output-format",
            "json",
            "--address",
            address,
            "--message",
            message,
        ]
        try:
            result = subprocess.run(
                command,
                input=f"{password}\n",
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise MissingDependency(f"{self.executable} is not installed or not on PATH.") from e
        except subprocess.CalledProcessError as e:
            raise SigningError(
                f"{self.executable} failed to sign for {address}: {e.stderr.strip()}"
            ) from e
        try:
            return json.loads(result.stdout)["signature"]
        except (ValueError, KeyError) as e:
            raise SigningError(f"Unexpected {self.executable} output: {result.stdout!r}") from e


def _strip_marker(signature: str) -> str:
    return signature[SIGNATURE_MARKER_LENGTH:]


def collect_multisig_signatures(
    message: str,
    addresses: Iterable[str],
    signing_tool: SigningTool,
    credentials: CredentialSource,
) -> str:
    """
    Signs with each address strictly in the given order and concatenates the
    results. The aggregate is only valid if this order matches the order the
    signers are expected in.
    """

    def _sign_next(accumulated: str, address: str) -> str:
        password = credentials.password(address)
        signature = signing_tool.sign(message, address, password)
        return accumulated + _strip_marker(signature)

    return reduce(_sign_next, addresses, "")


def sign_message(
    message: str,
    address: str,
    signer: str = CKB_CLI,
    prefix: str = "",
    signing_tool: Optional[SigningTool] = None,
    credentials: Optional[CredentialSource] = None,
) -> str:
    """
    ckb-cli: one password for address, returns the tool's signature as is.
    ckb-cli-multisig: asks for the signing addresses, signs with each in turn
    and returns prefix followed by the concatenated signatures.
    """
    signing_tool = signing_tool or CkbCliSigningTool()
    credentials = credentials or TerminalCredentialSource()

    if signer == CKB_CLI:
        password = credentials.password(address)
        return signing_tool.sign(message, address, password)

    if signer == CKB_CLI_MULTISIG:
        addresses = credentials.signing_addresses()
        if not addresses:
            raise MissingArgument("signing addresses")
        signatures = collect_multisig_signatures(message, addresses, signing_tool, credentials)
        return f"{prefix}{signatures}"

    raise UnsupportedSigner(signer)
