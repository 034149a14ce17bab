"""Settlement asset protocol — value transfer between accounts."""
from typing import Protocol


class SettlementAsset(Protocol):
    """Abstract interface for moving the settlement asset."""

    def balance_of(self, account: str) -> int: ...

    def transfer(
        self, sender: str, recipient: str, amount: int, *, notify: bool = True
    ) -> None: ...
