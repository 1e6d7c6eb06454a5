"""Order cart: staged stakes, pricing and batch submission."""

from roundclient.cart.engine import OrderCartEngine
from roundclient.cart.models import CartItem
from roundclient.cart.models import CartTotals
from roundclient.cart.models import SubmissionReceipt
from roundclient.cart.pricing import PricingPolicy
from roundclient.cart.pricing import compute_totals
from roundclient.cart.storage import CartStore

__all__ = [
    "CartItem",
    "CartStore",
    "CartTotals",
    "OrderCartEngine",
    "PricingPolicy",
    "SubmissionReceipt",
    "compute_totals",
]
