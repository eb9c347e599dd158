"""Supported chains, tokens and swap paths"""
from enum import IntEnum
from typing import Dict, List

from dgrants_clr.models.cart import SwapPath
from dgrants_clr.models.token import TokenAddress, TokenInfo


class SupportedChainId(IntEnum):
    MAINNET = 1
    RINKEBY = 4
    POLYGON = 137
    HARDHAT = 31337


# Placeholder address used for native ETH
ETH_ADDRESS = '0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee'

WETH_ADDRESSES: Dict[int, TokenAddress] = {
    SupportedChainId.MAINNET: '0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2',
    SupportedChainId.HARDHAT: '0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2',
    SupportedChainId.RINKEBY: '0xc778417e063141139fce010982780140aa0cd5ab',
    SupportedChainId.POLYGON: '0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270',
}

_MAINNET_TOKENS = [
    TokenInfo(ETH_ADDRESS, 'ETH', 18, 1),
    TokenInfo('0x6B175474E89094C44Da98b954EedeAC495271d0F', 'DAI', 18, 1),
    TokenInfo('0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48', 'USDC', 6, 1),
    TokenInfo('0xDe30da39c46104798bB5aA3fe8B9e0e1F348163F', 'GTC', 18, 1),
    TokenInfo('0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984', 'UNI', 18, 1),
]

SUPPORTED_TOKENS: Dict[int, List[TokenInfo]] = {
    SupportedChainId.MAINNET: _MAINNET_TOKENS,
    SupportedChainId.HARDHAT: _MAINNET_TOKENS,
    SupportedChainId.RINKEBY: [
        TokenInfo(ETH_ADDRESS, 'ETH', 18, 4),
        TokenInfo('0x5592EC0cfb4dbc12D3aB100b257153436a1f0FEa', 'DAI', 18, 4),
    ],
    SupportedChainId.POLYGON: [
        TokenInfo(ETH_ADDRESS, 'ETH', 18, 137),
        TokenInfo('0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063', 'DAI', 18, 137),
        TokenInfo('0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174', 'USDC', 6, 137),
        TokenInfo('0xc2132D05D31c914a87C6611C10748AEb04B58e8F', 'USDT', 6, 137),
        TokenInfo('0x1BFD67037B42Cf73acF2047067bd4F2C47D9BfD6', 'WBTC', 8, 137),
    ],
}

# Hardcoded paths from each input token to DAI through the most liquid pools
_MAINNET_SWAP_PATHS: Dict[TokenAddress, SwapPath] = {
    # ETH to DAI through the 0.3% pool
    ETH_ADDRESS: '0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2000bb86b175474e89094c44da98b954eedeac495271d0f',
    # USDC to DAI through the 0.05% pool
    '0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48': '0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb480001f46b175474e89094c44da98b954eedeac495271d0f',
    # GTC to ETH through 1% pool, ETH to DAI through 0.3% pool
    '0xde30da39c46104798bb5aa3fe8b9e0e1f348163f': '0xde30da39c46104798bb5aa3fe8b9e0e1f348163f002710c02aaa39b223fe8d0a0e5c4f27ead9083c756cc2000bb86b175474e89094c44da98b954eedeac495271d0f',
    # UNI to ETH through 0.3% pool, ETH to DAI through 0.3% pool
    '0x1f9840a85d5af5bf1d1762f925bdaddc4201f984': '0x1f9840a85d5af5bf1d1762f925bdaddc4201f984000bb8c02aaa39b223fe8d0a0e5c4f27ead9083c756cc2000bb86b175474e89094c44da98b954eedeac495271d0f',
    # DAI needs no swap, its path is its own address
    '0x6b175474e89094c44da98b954eedeac495271d0f': '0x6b175474e89094c44da98b954eedeac495271d0f',
}

SWAP_PATHS: Dict[int, Dict[TokenAddress, SwapPath]] = {
    SupportedChainId.MAINNET: _MAINNET_SWAP_PATHS,
    SupportedChainId.HARDHAT: _MAINNET_SWAP_PATHS,
    SupportedChainId.RINKEBY: {
        ETH_ADDRESS: '0xc778417e063141139fce010982780140aa0cd5ab000bb85592ec0cfb4dbc12d3ab100b257153436a1f0fea',
        '0x5592ec0cfb4dbc12d3ab100b257153436a1f0fea': '0x5592ec0cfb4dbc12d3ab100b257153436a1f0fea',
    },
    # Uniswap V2 style (SushiSwap) paths are lists of token addresses
    SupportedChainId.POLYGON: {
        ETH_ADDRESS: ('0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270', '0x8f3cf7ad23cd3cadbd9735aff958023239c6a063'),
        '0x2791bca1f2de4661ed88a30c99a7a9449aa84174': ('0x2791bca1f2de4661ed88a30c99a7a9449aa84174', '0x8f3cf7ad23cd3cadbd9735aff958023239c6a063'),
        '0xc2132d05d31c914a87c6611c10748aeb04b58e8f': ('0xc2132d05d31c914a87c6611c10748aeb04b58e8f', '0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270', '0x8f3cf7ad23cd3cadbd9735aff958023239c6a063'),
        '0x1bfd67037b42cf73acf2047067bd4f2c47d9bfd6': ('0x1bfd67037b42cf73acf2047067bd4f2c47d9bfd6', '0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270', '0x8f3cf7ad23cd3cadbd9735aff958023239c6a063'),
        '0x8f3cf7ad23cd3cadbd9735aff958023239c6a063': ('0x8f3cf7ad23cd3cadbd9735aff958023239c6a063',),
    },
}


def token_catalog(chain_id: int) -> Dict[TokenAddress, TokenInfo]:
    """Supported tokens of a chain keyed by address"""
    try:
        tokens = SUPPORTED_TOKENS[chain_id]
    except KeyError:
        raise ValueError(f"Unsupported chain id: {chain_id}")
    return {token.address: token for token in tokens}


def token_by_symbol(chain_id: int, symbol: str) -> TokenInfo:
    """Supported token of a chain by its symbol"""
    for token in token_catalog(chain_id).values():
        if token.symbol == symbol:
            return token
    raise ValueError(f"Token {symbol} is not supported on chain {chain_id}")
