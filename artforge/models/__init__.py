from artforge.models.account import Account
from artforge.models.credit_transaction import CreditTransaction
from artforge.models.generation import Generation
from artforge.models.credit_package import CreditPackage
from artforge.models.payment_session import PaymentSession

__all__ = [
    "Account", "CreditTransaction", "Generation",
    "CreditPackage", "PaymentSession",
]
