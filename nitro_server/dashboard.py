"""Dashboard statistics derived from products and transactions."""

from typing import Sequence

from .models import DashboardStats, Product, Transaction, TransactionStatus

RECENT_TRANSACTIONS = 5


def build_dashboard_stats(
    products: Sequence[Product], transactions: Sequence[Transaction]
) -> DashboardStats:
    """
    Summarize products and transactions for the dashboard.

    Transactions are taken in the order the API returned them, so the
    recent slice is simply the first few.

    Args:
        products: Products from the API
        transactions: Transactions from the API

    Returns:
        Dashboard statistics
    """
    total_sales = sum(t.amount for t in transactions if t.status == TransactionStatus.PAID)
    customers = {t.customer.email for t in transactions if t.customer is not None}

    return DashboardStats(
        total_sales=total_sales,
        total_products=len(products),
        total_transactions=len(transactions),
        total_customers=len(customers),
        recent_transactions=list(transactions[:RECENT_TRANSACTIONS]),
    )
