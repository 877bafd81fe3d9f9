"""Custom errors for the lending protocol model"""

class ProtocolError(Exception):
    """Base error class for protocol errors"""
    pass

# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class ValidationError(ProtocolError):
    """Malformed request: bad amount, unknown asset or position, bad config"""
    pass

class AuthorizationError(ProtocolError):
    """Caller lacks a role, the protocol is paused, or governance stake is short"""
    pass

class EconomicError(ProtocolError):
    """Request is well formed but the economics of the position reject it"""
    pass

class OracleError(ProtocolError):
    """Error for invalid or stale price data"""
    pass

class ArithmeticError(ProtocolError):
    """Error for arithmetic overflow/underflow"""
    pass

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ZeroAmountError(ValidationError):
    pass

class AssetNotListedError(ValidationError):
    """Asset is unknown or deactivated"""
    pass

class InvalidPositionError(ValidationError):
    """Error for invalid position operations"""
    pass

class InactivePositionError(ValidationError):
    """Position is closed or liquidated"""
    pass

class InvalidCollateralError(ValidationError):
    """Error for invalid collateral operations"""
    pass

class IsolatedAssetViolationError(InvalidCollateralError):
    """Isolated-tier asset used with a cross-collateral position"""
    pass

class InvalidAssetForIsolationError(InvalidCollateralError):
    """Isolated position asked to hold an asset other than its bound one"""
    pass

class MaximumAssetsReachedError(InvalidCollateralError):
    pass

class InvalidConfigError(ValidationError):
    """One or more configuration fields are out of range"""

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))

class ReentrancyError(ValidationError):
    pass

# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class MissingRoleError(AuthorizationError):
    pass

class ProtocolPausedError(AuthorizationError):
    pass

class NotEnoughGovernanceTokensError(AuthorizationError):
    pass

# ---------------------------------------------------------------------------
# Economic
# ---------------------------------------------------------------------------

class CreditLimitExceededError(EconomicError):
    pass

class AssetCapacityReachedError(EconomicError):
    pass

class NotLiquidatableError(EconomicError):
    pass

class IsolationDebtCapExceededError(EconomicError):
    pass

class OutstandingDebtError(EconomicError):
    """Position still carries debt"""
    pass

class LowLiquidityError(EconomicError):
    """Pool cash cannot cover the request"""
    pass

class FlashLoanFailedError(EconomicError):
    pass

class FlashLoanRepaymentError(EconomicError):
    pass

# ---------------------------------------------------------------------------
# Oracle
# ---------------------------------------------------------------------------

class InvalidPriceError(OracleError):
    pass

class StalePriceError(OracleError):
    pass

class OracleTimeoutError(OracleError):
    pass

class PriceVolatilityError(OracleError):
    pass

class InsufficientOraclesError(OracleError):
    pass

# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

class InsufficientCollateralError(ArithmeticError):
    """Error for insufficient collateral"""
    pass

class InsufficientBalanceError(ArithmeticError):
    """Token balance or allowance underflow"""
    pass
