"""Domain errors raised by services and rendered by the exception handler in main."""
from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class OrderNotFoundError(NotFoundError):
    default_detail = "Order not found"


class NotAuthorizedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized"


class EmptyCartError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "No items in cart"


class CallbackAuthenticationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Callback hash verification failed"


class PaymentProcessingError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Payment failed"

    def __init__(self, detail: str | None = None, order_id: str | None = None):
        super().__init__(detail)
        self.order_id = order_id


class PersistenceError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Storage unavailable"
