"""Credit Ledger Repository Interface

Defines the contract for credit ledger persistence operations.
"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.credit_ledger import CreditLedger


class CreditLedgerRepository(ABC):
    """
    Repository interface for CreditLedger persistence

    Grants are a single atomic increment so that unrelated concurrent grants
    to the same user never lose updates.
    """

    @abstractmethod
    async def get_by_user_id(self, user_id: str) -> Optional[CreditLedger]:
        """
        Retrieve ledger by user ID

        Returns:
            CreditLedger if found, None otherwise
        """
        pass

    @abstractmethod
    async def increment_balance(self, user_id: str, amount: int) -> None:
        """
        Atomically add ``amount`` to the user's balance

        Creates the ledger with ``amount`` as its balance when the user has
        none yet.

        Raises:
            IntegrityError: If a concurrent caller created the ledger first
                (retrying the increment then succeeds)
        """
        pass
