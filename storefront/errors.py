"""
Erreurs métier du checkout.

- Une seule exception (CheckoutError) porte une valeur étiquetée: kind, code, http_status, details
- Les kinds forment un ensemble fermé (ErrorKind) avec code et statut HTTP par défaut
- Les details ne contiennent jamais de trace amont, seulement des chaînes courtes et des ids
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    CART = "cart"
    PRICING = "pricing"
    SHIPPING = "shipping"
    ORDER = "order"
    PAYMENT = "payment"
    ADDRESS = "address"

    @property
    def default_code(self) -> str:
        return f"{self.name}_ERROR"

    @property
    def default_status(self) -> int:
        return _DEFAULT_STATUS[self]


_DEFAULT_STATUS = {
    ErrorKind.CART: 400,
    ErrorKind.PRICING: 502,
    ErrorKind.SHIPPING: 422,
    ErrorKind.ORDER: 500,
    ErrorKind.PAYMENT: 402,
    ErrorKind.ADDRESS: 422,
}


class CheckoutError(Exception):
    """Erreur métier étiquetée (kind + code machine + statut HTTP + details)."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code or kind.default_code
        self.http_status = http_status or kind.default_status
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"CheckoutError(kind={self.kind.value!r}, code={self.code!r}, message={self.message!r})"


def _short(err: BaseException) -> str:
    """Résumé d'une exception amont (type + message tronqué), sans traceback."""
    text = str(err) or err.__class__.__name__
    return f"{err.__class__.__name__}: {text[:200]}"


def cart_error(message: str, **kw) -> CheckoutError:
    return CheckoutError(ErrorKind.CART, message, **kw)


def pricing_error(message: str, **kw) -> CheckoutError:
    return CheckoutError(ErrorKind.PRICING, message, **kw)


def shipping_error(message: str, **kw) -> CheckoutError:
    return CheckoutError(ErrorKind.SHIPPING, message, **kw)


def order_error(message: str, **kw) -> CheckoutError:
    return CheckoutError(ErrorKind.ORDER, message, **kw)


def payment_error(message: str, **kw) -> CheckoutError:
    return CheckoutError(ErrorKind.PAYMENT, message, **kw)


def address_error(message: str, **kw) -> CheckoutError:
    return CheckoutError(ErrorKind.ADDRESS, message, **kw)


def upstream_details(err: BaseException, **extra: Any) -> Dict[str, Any]:
    """Construit un payload details à partir d'une erreur amont (jamais la trace)."""
    details: Dict[str, Any] = {"upstream": _short(err)}
    details.update(extra)
    return details
