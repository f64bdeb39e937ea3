"""迁移中写入的默认链与 IPFS 配置。

每次取用都返回新列表，迁移结果之间不共享可变对象。
"""

from typing import Any, Dict, List

BASE_TOKEN = "eosio.token:"

_TELOS_MAINNET = {
    "blockchain": "Telos Mainnet",
    "tokenSymbol": "TLOS",
    "node": "https://api.eos.miami",
    "chainId": "4667b205c6838ef70ff7988f6e8257e8be0e1284a2f59699054a018f743b1d11",
}
_TELOS_TESTNET = {
    "blockchain": "Telos Testnet",
    "tokenSymbol": "TLOS",
    "node": "https://testnet.eos.miami",
    "chainId": "e17615decaecd202a365f4c029f206eee98511979de8a5756317e2469f2289e3",
}
_EOS_MAINNET = {
    "blockchain": "EOS Mainnet",
    "tokenSymbol": "EOS",
    "node": "https://eos.greymass.com",
    "chainId": "aca376f206b8fc25a6ed44dbdc66547c36c6c33e3a119ffbeaef943642f0e906",
}
_JUNGLE_CHAIN_ID = "038f4b0fc8ff18a4f0842a8f0564611f6e96e8535901dd45e43ac8691a1c4dca"
_JUNGLE_NODE = "http://jungle.cryptolions.io:18888"

IPFS_DEFAULTS = {
    "ipfsNode": "https://ipfs.telos.miami",
    "ipfsPort": "5002",
    "ipfsProtocol": "https",
}


def default_blockchains_v7() -> List[Dict[str, Any]]:
    """版本 7 首次引入多链时的默认链列表。"""
    return [
        dict(_TELOS_MAINNET),
        dict(_TELOS_TESTNET),
        dict(_EOS_MAINNET),
        {
            "blockchain": "Jungle Testnet",
            "tokenSymbol": "EOS",
            "node": _JUNGLE_NODE,
            "chainId": _JUNGLE_CHAIN_ID,
        },
    ]


def default_blockchains_v8() -> List[Dict[str, Any]]:
    """版本 8 的默认链列表（Jungle 更名为 EOS Testnet）。"""
    return [
        dict(_TELOS_MAINNET),
        dict(_TELOS_TESTNET),
        dict(_EOS_MAINNET),
        {
            "blockchain": "EOS Testnet",
            "tokenSymbol": "EOS",
            "node": _JUNGLE_NODE,
            "chainId": _JUNGLE_CHAIN_ID,
        },
    ]
