"""Product-related exceptions."""

from src.shared.errors.exceptions import AppError, ErrorKind


class ProductNotFound(AppError):
    """Raised when product is not found."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, product_id: int):
        super().__init__(detail=f"Product {product_id} not found", public_message="Product not found")
