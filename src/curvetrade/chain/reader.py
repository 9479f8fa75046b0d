"""Abstract chain reader interface.

The quote engine, history aggregator, market stats and trade executor depend
only on this contract. Implementations return typed values or raise one of
the curvetrade exceptions; they never leak transport errors.
"""

from abc import ABC, abstractmethod

from curvetrade.models import EventKind, TokenStats, TradeEvent, TransactionReceipt, WriteCall


class ChainReader(ABC):
    """Typed read/write operations against one chain.

    All amounts are ints at 18-decimal scale (wei).
    """

    @abstractmethod
    async def read_current_price(self, market: str) -> int:
        """Return the curve's current per-token price in wei."""
        ...

    @abstractmethod
    async def read_buy_cost(self, market: str, token_amount: int) -> int:
        """Return the native cost in wei of buying ``token_amount`` token wei."""
        ...

    @abstractmethod
    async def read_sell_proceeds(self, market: str, token_amount: int) -> int:
        """Return the native proceeds in wei of selling ``token_amount`` token wei."""
        ...

    @abstractmethod
    async def read_balance(self, address: str) -> int:
        """Return the native balance of an account or contract in wei."""
        ...

    @abstractmethod
    async def read_token_balance(self, market: str, account: str) -> int:
        """Return ``account``'s balance of the market token in token wei."""
        ...

    @abstractmethod
    async def read_token_stats(self, market: str) -> TokenStats:
        """Return the contract's aggregate statistics."""
        ...

    @abstractmethod
    async def get_logs(
        self, market: str, kind: EventKind, from_block: int, to_block: int
    ) -> list[TradeEvent]:
        """Return decoded trade events in ``[from_block, to_block]``.

        Ordering is whatever the node returns; callers sort.
        """
        ...

    @abstractmethod
    async def get_block_timestamp(self, block_number: int) -> int:
        """Return the block's timestamp in Unix seconds."""
        ...

    @abstractmethod
    async def current_block_number(self) -> int:
        """Return the latest block number."""
        ...

    @abstractmethod
    async def simulate_write(self, account: str, call: WriteCall) -> None:
        """Dry-run ``call`` from ``account``.

        Raises:
            SimulationFailed: If the call would revert.
        """
        ...

    @abstractmethod
    async def estimate_gas(self, account: str, call: WriteCall) -> int:
        """Return the gas estimate for ``call`` sent from ``account``."""
        ...

    @abstractmethod
    async def write_contract(self, account: str, call: WriteCall) -> str:
        """Sign and broadcast ``call``; return the transaction hash."""
        ...

    @abstractmethod
    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> TransactionReceipt:
        """Wait for ``tx_hash`` to be mined.

        Raises:
            TradeTimeout: If no receipt arrives within ``timeout`` seconds.
            ReceiptUnverifiable: If the node cannot return the receipt at all.
        """
        ...
