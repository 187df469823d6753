from .client import StripeServiceClient

__all__ = ["StripeServiceClient"]
