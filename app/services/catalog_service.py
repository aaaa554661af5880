# app/services/catalog_service.py
import uuid

from sqlmodel import Session

from app.core.errors import NotFound
from app.core.validators import require_uuid
from app.models.product import Product
from app.repositories.product_repo import ProductRepository


class CatalogService:
    """
    Read-only product lookups for the cart and checkout.

    Stock is never changed here; the checkout owns the decrement so it
    stays inside the order transaction.
    """

    def __init__(self, product_repo: ProductRepository):
        self.product_repo = product_repo

    def get_product(self, session: Session, product_id: uuid.UUID | str) -> Product:
        product = self.product_repo.get_by_id(
            session, require_uuid(product_id, "product_id")
        )
        if product is None:
            raise NotFound("Product not found")
        return product
