"""Display helpers for amounts, statuses and categories."""

from typing import Iterable, Sequence, Union

from .models import Category, PaymentMethod, Transaction, TransactionStatus

STATUS_LABELS = {
    "paid": "Pago",
    "pending": "Pendente",
    "cancelled": "Cancelado",
    "refunded": "Reembolsado",
}

PAYMENT_METHOD_LABELS = {
    "pix": "PIX",
    "credit_card": "Cartão de Crédito",
    "billet": "Boleto",
}

UNKNOWN_CATEGORY = "Categoria não encontrada"


def format_currency(amount: int) -> str:
    """Format an amount in cents as BRL, e.g. 123456 -> 'R$ 1.234,56'."""
    sign = "-" if amount < 0 else ""
    reais, cents = divmod(abs(amount), 100)
    # pt-BR uses "." for thousands and "," for decimals
    grouped = f"{reais:,}".replace(",", ".")
    return f"{sign}R$ {grouped},{cents:02d}"


def status_label(status: Union[TransactionStatus, str]) -> str:
    """Portuguese label for a transaction status."""
    value = status.value if isinstance(status, TransactionStatus) else status
    return STATUS_LABELS.get(value, value)


def payment_method_label(method: Union[PaymentMethod, str]) -> str:
    """Portuguese label for a payment method."""
    value = method.value if isinstance(method, PaymentMethod) else method
    return PAYMENT_METHOD_LABELS.get(value, value)


def category_name(categories: Iterable[Category], category_id: int) -> str:
    """Name of the category with the given ID."""
    for category in categories:
        if category.id == category_id:
            return category.name
    return UNKNOWN_CATEGORY


def filter_transactions(transactions: Sequence[Transaction], status: str = "all") -> list[Transaction]:
    """Keep transactions with the given status; "all" keeps every one."""
    if status == "all":
        return list(transactions)
    return [t for t in transactions if t.status.value == status]
