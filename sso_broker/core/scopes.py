"""Scope catalogue"""

from enum import Enum

DEFAULT_SCOPE = "profile"


class Scope(str, Enum):
    """Recognized OAuth scopes"""

    PROFILE = "profile"
    EMAIL = "email"
    PHONE = "phone"
    WALLET_READ = "wallet:read"
    WALLET_WRITE = "wallet:write"
    CARDS_READ = "cards:read"
    TRANSACTIONS_READ = "transactions:read"
    TRANSFERS_WRITE = "transfers:write"
    SCHOOL_CONNECT = "school:connect"
    SCHOOL_MANAGE = "school:manage"
    STUDENT_SYNC = "student:sync"
    FEE_PAY = "fee:pay"


SCOPE_DESCRIPTIONS: dict[Scope, str] = {
    Scope.PROFILE: "View your name and basic profile",
    Scope.EMAIL: "View your email address",
    Scope.PHONE: "View your phone number",
    Scope.WALLET_READ: "View your wallet balances",
    Scope.WALLET_WRITE: "Move money in and out of your wallets",
    Scope.CARDS_READ: "View your cards",
    Scope.TRANSACTIONS_READ: "View your transaction history",
    Scope.TRANSFERS_WRITE: "Send transfers on your behalf",
    Scope.SCHOOL_CONNECT: "Connect a school to your account",
    Scope.SCHOOL_MANAGE: "Manage the school's payment settings",
    Scope.STUDENT_SYNC: "Sync student records with the school",
    Scope.FEE_PAY: "Pay school fees from your wallet",
}

# Shown with a warning on the consent screen
SENSITIVE_SCOPES = frozenset(
    {Scope.WALLET_WRITE, Scope.TRANSFERS_WRITE, Scope.FEE_PAY, Scope.SCHOOL_MANAGE}
)

RECOGNIZED_SCOPES = frozenset(s.value for s in Scope)


def split_scope(scope: str | None) -> list[str]:
    """Split a space-separated scope string, keeping order and dropping duplicates"""
    if not scope or not scope.strip():
        return [DEFAULT_SCOPE]
    return list(dict.fromkeys(scope.split()))


def is_recognized(scope: str) -> bool:
    return scope in RECOGNIZED_SCOPES


def describe(scope: str) -> dict:
    """Consent-screen entry for a single scope"""
    if not is_recognized(scope):
        return {
            "scope": scope,
            "description": None,
            "recognized": False,
            "sensitive": False,
        }
    member = Scope(scope)
    return {
        "scope": scope,
        "description": SCOPE_DESCRIPTIONS[member],
        "recognized": True,
        "sensitive": member in SENSITIVE_SCOPES,
    }
