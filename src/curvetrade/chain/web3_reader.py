"""ChainReader implementation via web3.py's AsyncWeb3.

Reads go through a CreatorToken contract handle per market. Writes are
signed locally with the configured account and broadcast as raw
transactions. Every web3/transport error is converted to a curvetrade
exception at this boundary.
"""

from collections.abc import Awaitable
from typing import Any, TypeVar

from aiohttp import ClientTimeout
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract
from web3.exceptions import ContractLogicError, TimeExhausted, TransactionNotFound

from curvetrade.chain.abi import CREATOR_TOKEN_ABI, EVENT_TOTAL_FIELD, EVENT_TRADER_FIELD
from curvetrade.chain.reader import ChainReader
from curvetrade.config import ChainSettings
from curvetrade.exceptions import (
    ChainUnavailable,
    InsufficientBalance,
    ReceiptUnverifiable,
    SimulationFailed,
    TradeTimeout,
    UserRejected,
    WalletNotConnected,
)
from curvetrade.logging import get_logger
from curvetrade.models import EventKind, TokenStats, TradeEvent, TransactionReceipt, WriteCall

logger = get_logger(__name__)

T = TypeVar("T")


class Web3ChainReader(ChainReader):
    """Concrete chain reader backed by an AsyncWeb3 HTTP provider.

    Args:
        settings: RPC endpoint, chain id and optional signing key.
        w3: Pre-built AsyncWeb3 instance (tests inject a mock here).
    """

    def __init__(self, settings: ChainSettings, w3: AsyncWeb3 | None = None) -> None:
        self._settings = settings
        if w3 is None:
            provider = AsyncWeb3.AsyncHTTPProvider(
                settings.rpc_url,
                request_kwargs={"timeout": ClientTimeout(total=settings.request_timeout)},
            )
            w3 = AsyncWeb3(provider)
        self._w3 = w3
        self._contracts: dict[str, AsyncContract] = {}

        key = settings.private_key.get_secret_value()
        self._account: LocalAccount | None = Account.from_key(key) if key else None

    @property
    def account_address(self) -> str | None:
        """Address of the signing account, or None when no key is configured."""
        return self._account.address if self._account is not None else None

    async def close(self) -> None:
        """Release the provider's HTTP session."""
        provider = self._w3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
        logger.info("web3_reader_closed")

    def _contract(self, market: str) -> AsyncContract:
        address = Web3.to_checksum_address(market)
        contract = self._contracts.get(address)
        if contract is None:
            contract = self._w3.eth.contract(address=address, abi=CREATOR_TOKEN_ABI)
            self._contracts[address] = contract
        return contract

    async def _read(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except Exception as exc:
            logger.debug("chain_read_failed", operation=operation, error=str(exc))
            raise ChainUnavailable(f"{operation} failed: {exc}") from exc

    # ──────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────

    async def read_current_price(self, market: str) -> int:
        fn = self._contract(market).functions.getCurrentPrice()
        return int(await self._read("getCurrentPrice", fn.call()))

    async def read_buy_cost(self, market: str, token_amount: int) -> int:
        fn = self._contract(market).functions.calculateBuyCost(token_amount)
        return int(await self._read("calculateBuyCost", fn.call()))

    async def read_sell_proceeds(self, market: str, token_amount: int) -> int:
        fn = self._contract(market).functions.calculateSellPrice(token_amount)
        return int(await self._read("calculateSellPrice", fn.call()))

    async def read_balance(self, address: str) -> int:
        checksum = Web3.to_checksum_address(address)
        return int(await self._read("get_balance", self._w3.eth.get_balance(checksum)))

    async def read_token_balance(self, market: str, account: str) -> int:
        fn = self._contract(market).functions.balanceOf(Web3.to_checksum_address(account))
        return int(await self._read("balanceOf", fn.call()))

    async def read_token_stats(self, market: str) -> TokenStats:
        fn = self._contract(market).functions.getTokenStats()
        result = await self._read("getTokenStats", fn.call())
        total_supply, total_sold, price, market_cap, holders, fees = (int(v) for v in result)
        return TokenStats(
            total_supply=total_supply,
            total_sold=total_sold,
            current_price=price,
            market_cap=market_cap,
            holder_count=holders,
            creator_fees=fees,
        )

    async def get_logs(
        self, market: str, kind: EventKind, from_block: int, to_block: int
    ) -> list[TradeEvent]:
        event = getattr(self._contract(market).events, kind.value)
        logs = await self._read(
            f"get_logs:{kind.value}",
            event.get_logs(from_block=from_block, to_block=to_block),
        )
        return [_decode_event(kind, log) for log in logs]

    async def get_block_timestamp(self, block_number: int) -> int:
        block = await self._read("get_block", self._w3.eth.get_block(block_number))
        return int(block["timestamp"])

    async def current_block_number(self) -> int:
        return int(await self._read("block_number", self._w3.eth.block_number))

    # ──────────────────────────────────────────────
    # Writes
    # ──────────────────────────────────────────────

    def _bound_function(self, call: WriteCall) -> Any:
        return getattr(self._contract(call.market).functions, call.function)(*call.args)

    def _signer(self, account: str) -> LocalAccount:
        if self._account is None:
            raise WalletNotConnected("No signing key configured")
        if self._account.address.lower() != account.lower():
            raise WalletNotConnected(f"Account {account} is not the configured signer")
        return self._account

    async def simulate_write(self, account: str, call: WriteCall) -> None:
        fn = self._bound_function(call)
        tx_params = {"from": Web3.to_checksum_address(account), "value": call.value}
        try:
            await fn.call(tx_params)
        except ContractLogicError as exc:
            raise SimulationFailed(f"{call.function} would revert: {exc}") from exc
        except Exception as exc:
            raise ChainUnavailable(f"simulation of {call.function} failed: {exc}") from exc

    async def estimate_gas(self, account: str, call: WriteCall) -> int:
        fn = self._bound_function(call)
        tx_params = {"from": Web3.to_checksum_address(account), "value": call.value}
        try:
            return int(await fn.estimate_gas(tx_params))
        except ContractLogicError as exc:
            raise SimulationFailed(f"{call.function} gas estimation reverted: {exc}") from exc
        except Exception as exc:
            raise ChainUnavailable(f"gas estimation for {call.function} failed: {exc}") from exc

    async def write_contract(self, account: str, call: WriteCall) -> str:
        signer = self._signer(account)
        fn = self._bound_function(call)
        try:
            nonce = await self._w3.eth.get_transaction_count(signer.address)
            tx_params: dict[str, Any] = {
                "from": signer.address,
                "value": call.value,
                "nonce": nonce,
                "chainId": self._settings.chain_id,
            }
            if call.gas is not None:
                tx_params["gas"] = call.gas
            tx = await fn.build_transaction(tx_params)
            signed = signer.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as exc:
            raise SimulationFailed(f"{call.function} reverted: {exc}") from exc
        except Exception as exc:
            message = str(exc).lower()
            if "insufficient funds" in message:
                raise InsufficientBalance(str(exc)) from exc
            if "rejected" in message or "denied" in message:
                raise UserRejected(str(exc)) from exc
            raise ChainUnavailable(f"broadcast of {call.function} failed: {exc}") from exc

        tx_hex = Web3.to_hex(tx_hash)
        logger.info("transaction_broadcast", function=call.function, tx_hash=tx_hex)
        return tx_hex

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> TransactionReceipt:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as exc:
            raise TradeTimeout(f"No receipt for {tx_hash} after {timeout}s") from exc
        except TransactionNotFound as exc:
            raise ReceiptUnverifiable(f"Receipt for {tx_hash} not found") from exc
        except Exception as exc:
            raise ChainUnavailable(f"receipt lookup for {tx_hash} failed: {exc}") from exc

        return TransactionReceipt(
            tx_hash=tx_hash,
            status=receipt["status"] == 1,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )


def _decode_event(kind: EventKind, log: Any) -> TradeEvent:
    """Convert a web3 event log into a TradeEvent."""
    args = log["args"]
    tx_hash = log.get("transactionHash")
    return TradeEvent(
        kind=kind,
        block_number=int(log["blockNumber"]),
        price=int(args["price"]),
        amount=int(args.get("amount", 0)),
        total=int(args.get(EVENT_TOTAL_FIELD[kind.value], 0)),
        trader=str(args.get(EVENT_TRADER_FIELD[kind.value], "")),
        log_index=int(log.get("logIndex", 0)),
        tx_hash=Web3.to_hex(tx_hash) if tx_hash is not None else "",
    )
