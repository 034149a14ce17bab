"""Token sink protocol — the basket token the vault mints and burns."""
from typing import Protocol


class TokenSink(Protocol):
    """Abstract interface for a vault-controlled basket token."""

    def mint(self, caller: str, account: str, amount: int) -> None: ...

    def burn(self, caller: str, account: str, amount: int) -> None: ...
