class DeploymentError(Exception):
    """Base class for every error raised while deploying or upgrading a contract."""


class InvalidArgument(DeploymentError, ValueError):
    """Raised when a command argument has the wrong type or value."""

    def __init__(self, name: str, value, expected: str):
        self.name = name
        self.value = value
        self.expected = expected
        super().__init__(f"Invalid value {value!r} for argument '{name}' of type {expected}.")


class MissingArgument(DeploymentError, ValueError):
    """Raised when a required argument was not provided."""

    def __init__(self, param: str):
        self.param = param
        super().__init__(f"Missing argument: {param}.")


class ContractNotSpecified(MissingArgument):
    def __init__(self):
        super().__init__("contract name or bin path")


class ContractBinaryNotFound(DeploymentError, FileNotFoundError):
    def __init__(self, name, filepath):
        self.name = name
        self.filepath = filepath
        super().__init__(
            f"Contract binary for '{name}' not found at {filepath}. "
            "Did you build it in release mode?"
        )


class MigrationDirectoryNotFound(DeploymentError, FileNotFoundError):
    def __init__(self, name, directory):
        self.name = name
        self.directory = directory
        super().__init__(f"Migration directory for '{name}' not found at {directory}.")


class MigrationNotFound(DeploymentError):
    def __init__(self, name, directory):
        self.name = name
        self.directory = directory
        super().__init__(f"No migration record for '{name}' found in {directory}.")


class InvalidMigrationFile(DeploymentError, ValueError):
    def __init__(self, filepath, reason: str):
        self.filepath = filepath
        super().__init__(f"Invalid migration file {filepath}: {reason}")


class UnsupportedSigner(DeploymentError, ValueError):
    def __init__(self, signer):
        self.signer = signer
        super().__init__(f"Unsupported signer '{signer}'.")


class MissingDependency(DeploymentError):
    """Raised when a script, tool or plugin the command relies on is not available."""


class WorkspaceNotFound(DeploymentError):
    pass


class RpcError(DeploymentError):
    pass


class BookkeepingError(DeploymentError):
    """
    The transaction was accepted by the node but the migration ledger or
    the contract registry could not be written. The broadcast is not
    reverted; the ledger must be reconciled by hand using tx_hash.
    """

    def __init__(self, tx_hash: str, step: str, cause: Exception):
        self.tx_hash = tx_hash
        self.step = step
        self.cause = cause
        super().__init__(
            f"Transaction {tx_hash} was sent but writing the {step} failed: {cause}"
        )


class SigningError(DeploymentError):
    pass
