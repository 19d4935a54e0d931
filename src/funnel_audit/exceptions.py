from typing import Optional


class FunnelAuditError(Exception):
    """Base exception class for funnel audit errors."""
    pass


class SessionInitError(FunnelAuditError):
    """The page agent session could not be created. Fails the whole run."""
    pass


class ActionNotPossibleError(FunnelAuditError):
    """The page agent could not perform a natural-language action."""
    def __init__(self, instruction: str, message: str, context: Optional[str] = ""):
        super().__init__(f"Could not perform '{instruction}': {message}. From: {context}")
        self.instruction = instruction
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return f"ActionNotPossibleError: {self.message} (instruction: {self.instruction})"


class ExtractionError(FunnelAuditError):
    """The page agent could not produce an observation for a prompt."""
    pass


class InvalidStoreUrlError(ValueError):
    """Store URL missing or malformed at the job boundary."""
    pass
