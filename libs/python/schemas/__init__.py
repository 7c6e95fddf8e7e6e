"""Shared schema exports."""

from .account import AccountListItem, AccountProfile

__all__ = [
    "AccountListItem",
    "AccountProfile",
]
