"""
Error taxonomy for action handling.

Every failure path ends in one of these. The HTTP layer renders them as
``{"error": message}`` with the class ``status``.
"""


class ActionError(Exception):
    """Base class for errors surfaced to the action caller."""

    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidAmount(ActionError):
    """Amount is malformed, non-positive or not representable in base units"""
    status = 400


class InvalidAddress(ActionError):
    """Value is not a base58-encoded 32-byte public key"""
    status = 400


class InvalidRequest(ActionError):
    """Request body or path identifier cannot be interpreted"""
    status = 400


class QuoteUnavailable(ActionError):
    """Quote/trade provider failed or returned nothing usable"""
    status = 502


class UpstreamUnavailable(ActionError):
    """Solana RPC call failed"""
    status = 503


class EmptyInstructionSet(ActionError):
    """Assembler was handed zero instructions"""
    status = 500


class SerializationFailed(ActionError):
    """Transaction could not be compiled, encoded or decoded"""
    status = 500
