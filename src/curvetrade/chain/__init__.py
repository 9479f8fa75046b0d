"""Chain access layer -- CreatorToken contract reads and writes via web3."""

from curvetrade.chain.reader import ChainReader
from curvetrade.chain.web3_reader import Web3ChainReader

__all__ = ["ChainReader", "Web3ChainReader"]
