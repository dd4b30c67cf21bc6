"""Typed chain errors.

Provider and web3 exceptions are classified once, at the accessor boundary,
into a ``ChainError`` carrying a stable code. Callers branch on the code.
"""

from __future__ import annotations

from enum import StrEnum

from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

# EIP-1193 "user rejected request"
_USER_REJECTED_RPC_CODE = 4001


class ChainErrorCode(StrEnum):
    USER_REJECTED = "USER_REJECTED"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    CONTRACT_REVERT = "CONTRACT_REVERT"
    NOT_CONFIGURED = "NOT_CONFIGURED"
    RPC_UNAVAILABLE = "RPC_UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


class ChainError(Exception):
    """A failed contract read or RPC call."""

    def __init__(self, code: ChainErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"ChainError(code={self.code.value!r}, message={self.message!r})"


def _rpc_error_payload(exc: BaseException) -> dict | None:
    """Return the JSON-RPC error dict carried by a provider exception, if any."""
    for arg in getattr(exc, "args", ()):
        if isinstance(arg, dict) and ("code" in arg or "message" in arg):
            return arg
    payload = getattr(exc, "rpc_response", None)
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"]
    return None


def classify_chain_error(exc: BaseException) -> ChainError:
    """Convert any exception raised while talking to the chain into a ChainError."""
    if isinstance(exc, ChainError):
        return exc

    if isinstance(exc, ContractLogicError):
        return ChainError(ChainErrorCode.CONTRACT_REVERT, str(exc) or "Execution reverted")

    payload = _rpc_error_payload(exc)
    if payload is not None:
        message = str(payload.get("message", exc))
        if payload.get("code") == _USER_REJECTED_RPC_CODE:
            return ChainError(ChainErrorCode.USER_REJECTED, message)
        if "insufficient funds" in message.lower():
            return ChainError(ChainErrorCode.INSUFFICIENT_FUNDS, message)
        if "revert" in message.lower():
            return ChainError(ChainErrorCode.CONTRACT_REVERT, message)
        return ChainError(ChainErrorCode.UNKNOWN, message)

    if isinstance(exc, (ConnectionError, TimeoutError, TimeExhausted, OSError)):
        return ChainError(ChainErrorCode.RPC_UNAVAILABLE, str(exc) or type(exc).__name__)

    if isinstance(exc, Web3Exception):
        return ChainError(ChainErrorCode.UNKNOWN, str(exc))

    return ChainError(ChainErrorCode.UNKNOWN, str(exc) or type(exc).__name__)
