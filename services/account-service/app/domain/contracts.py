"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class RegisterAccountInput:
    """Inputs required to register an account; ``password`` is plaintext."""

    user_name: str
    family_name: str
    first_name: str
    email: str
    password: str


@dataclass(slots=True)
class NewAccountRecord:
    """Column values written when inserting a new account row."""

    user_name: str
    family_name: str
    first_name: str
    email: str
    password_hash: str
