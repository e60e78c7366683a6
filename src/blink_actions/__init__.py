"""Solana Actions service: unsigned transactions for donate, buy and swap."""

__version__ = "0.1.0"
