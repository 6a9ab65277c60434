class DistributorError(Exception):
    """Base class for every error raised by the distributor"""

    pass


# configuration


class ConfigurationError(DistributorError):
    """Bad input from an admin or depositor, surfaced immediately and never retried"""

    pass


class BadConfigException(ConfigurationError):
    pass


class MissingEnvironmentVariableException(ConfigurationError):
    pass


class LengthMismatch(ConfigurationError):
    """Raise if paired input lists (tokens/amounts) have different lengths"""

    pass


class FeeOutOfRange(ConfigurationError):
    """Raise if a fee rate is outside of [0, 100%] in fixed point"""

    pass


class TokenNotWhitelisted(ConfigurationError):
    pass


class BelowMinimum(ConfigurationError):
    """Raise if a deposit is smaller than the minimum for the token"""

    pass


class UnknownTokenError(ConfigurationError):
    """Raise if a token id cannot be resolved by the token registry"""

    pass


# authorization


class AuthorizationError(DistributorError):
    pass


class Unauthorized(AuthorizationError):
    """Raise if a caller without the admin role calls an admin-only operation"""

    pass


# proofs


class ProofError(DistributorError):
    """The proof data is stale or corrupt and must be re-fetched from the latest snapshot"""

    pass


class NoRootPublished(ProofError):
    pass


class InvalidProof(ProofError):
    pass


# state


class StateError(DistributorError):
    """Permanent failure for the leaf or pool involved"""

    pass


class AlreadyClaimed(StateError):
    pass


class InsufficientPool(StateError):
    pass


class InsufficientBalance(StateError):
    """Raise if a token holder tries to move more than they hold"""

    pass


class ClaimWindowOpen(StateError):
    """Raise if unused rewards are withdrawn before the claim window has elapsed"""

    pass


# off-chain tree generation


class TreeError(DistributorError):
    pass


class EmptyTreeError(TreeError):
    """Raise if a tree is requested for zero leaves, no root can be published"""

    pass


class LeafNotFound(TreeError):
    pass


class InvalidLeafInput(TreeError, ValueError):
    """Raise if a reward fact cannot be packed into a leaf"""

    pass


class MissingDBException(DistributorError):
    pass
