"""Minimal CreatorToken ABI: the functions and events curvetrade touches."""


def _fn(name: str, inputs: list[tuple[str, str]], outputs: list[str], mutability: str) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


def _event(name: str, fields: list[tuple[str, str, bool]]) -> dict:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": idx} for n, t, idx in fields],
    }


CREATOR_TOKEN_ABI: list[dict] = [
    _fn("getCurrentPrice", [], ["uint256"], "view"),
    _fn("calculateBuyCost", [("tokenAmount", "uint256")], ["uint256"], "view"),
    _fn("calculateSellPrice", [("tokenAmount", "uint256")], ["uint256"], "view"),
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn(
        "getTokenStats",
        [],
        ["uint256", "uint256", "uint256", "uint256", "uint256", "uint256"],
        "view",
    ),
    _fn("buyTokens", [("tokenAmount", "uint256")], [], "payable"),
    _fn("sellTokens", [("tokenAmount", "uint256")], [], "nonpayable"),
    _event(
        "TokenPurchased",
        [
            ("buyer", "address", True),
            ("amount", "uint256", False),
            ("price", "uint256", False),
            ("totalPaid", "uint256", False),
        ],
    ),
    _event(
        "TokenSold",
        [
            ("seller", "address", True),
            ("amount", "uint256", False),
            ("price", "uint256", False),
            ("totalReceived", "uint256", False),
        ],
    ),
]

# Name of the native-currency total field per event.
EVENT_TOTAL_FIELD = {
    "TokenPurchased": "totalPaid",
    "TokenSold": "totalReceived",
}
EVENT_TRADER_FIELD = {
    "TokenPurchased": "buyer",
    "TokenSold": "seller",
}
