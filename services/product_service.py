# purvita/services/product_service.py
"""
Product catalog repository.

Every write is audit-logged (PRODUCT_CREATED / PRODUCT_UPDATED / PRODUCT_DELETED)
and announced on the product event bus, which the admin dashboard listens to.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.event_bus import EventBus
from core.utils import decimal_to_cents, iso
from models.product import Product
from schemas.product import ProductPayload, ProductUpdatePayload
from services.audit_log_service import AuditLogService

logger = logging.getLogger(__name__)


class ProductEvents:
    CREATED = "product.created"
    UPDATED = "product.updated"
    DELETED = "product.deleted"


class ProductEventBus(EventBus):

    def __init__(self):
        super().__init__(name="products")


productEventBus = ProductEventBus()


class ProductError(Exception):
    pass


class ProductNotFoundError(ProductError):
    pass


# Payload key -> Product column
_COLUMN_MAP = {
    'slug': 'slug',
    'name': 'name',
    'description': 'description',
    'discount_type': 'discountType',
    'discount_value': 'discountValue',
    'discount_label': 'discountLabel',
    'stock_quantity': 'stockQuantity',
    'is_featured': 'isFeatured',
    'cart_visibility_countries': 'cartVisibilityCountries',
    'related_product_ids': 'relatedProductIDs',
}


def _payload_to_columns(data: Dict[str, Any]) -> Dict[str, Any]:
    columns = {column: data[key] for key, column in _COLUMN_MAP.items() if key in data}

    if data.get('price') is not None:
        columns['priceCents'] = decimal_to_cents(data['price'])

    if 'images' in data and data['images'] is not None:
        columns['images'] = [
            image.model_dump() if hasattr(image, 'model_dump') else dict(image)
            for image in data['images']
        ]

    return columns


class ProductRepository:

    def __init__(
            self,
            session: Session,
            eventBus: Optional[ProductEventBus] = None,
            audit: Optional[AuditLogService] = None
    ):
        self.session = session
        self.eventBus = eventBus or productEventBus
        self.audit = audit or AuditLogService(session)

    # ═══════════════════════════════════════════════════════════════════
    # READS
    # ═══════════════════════════════════════════════════════════════════

    async def list(self) -> List[Product]:
        return self.session.query(Product).order_by(Product.createdAt.desc()).all()

    async def listFeatured(self, limit: Optional[int] = None) -> List[Product]:
        query = (
            self.session.query(Product)
            .filter(Product.isFeatured == True)  # noqa: E712
            .order_by(Product.updatedAt.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    async def count(self) -> int:
        return self.session.query(func.count(Product.productID)).scalar() or 0

    async def getBySlug(self, slug: str) -> Optional[Product]:
        return self.session.query(Product).filter_by(slug=slug).first()

    async def getById(self, productId: str) -> Optional[Product]:
        return self.session.query(Product).filter_by(productID=productId).first()

    async def listRelated(self, baseSlug: str) -> List[Product]:
        """Products configured as related to baseSlug, in the configured order."""
        base = await self.getBySlug(baseSlug)
        if base is None or not base.relatedProductIDs:
            return []

        related = self.session.query(Product).filter(
            Product.productID.in_(base.relatedProductIDs)
        ).all()
        by_id = {product.productID: product for product in related}

        return [by_id[pid] for pid in base.relatedProductIDs if pid in by_id]

    async def listRecent(self, limit: int = 5) -> List[Product]:
        return self.session.query(Product).order_by(Product.createdAt.desc()).limit(limit).all()

    async def getStockSummary(self) -> Dict[str, Any]:
        """
        Returns:
            {"totalStock": int, "products": [{"id", "name", "stockQuantity"}]} sorted by name
        """
        rows = (
            self.session.query(Product.productID, Product.name, Product.stockQuantity)
            .order_by(Product.name.asc())
            .all()
        )

        products = [
            {
                "id": product_id,
                "name": name or 'Unnamed product',
                "stockQuantity": max(0, int(stock or 0)),
            }
            for product_id, name, stock in rows
        ]

        return {
            "totalStock": sum(item["stockQuantity"] for item in products),
            "products": products,
        }

    # ═══════════════════════════════════════════════════════════════════
    # WRITES
    # ═══════════════════════════════════════════════════════════════════

    async def create(
            self,
            payload: Union[ProductPayload, Dict[str, Any]],
            adminId: Optional[str] = None
    ) -> Product:
        if not isinstance(payload, ProductPayload):
            payload = ProductPayload.model_validate(payload)

        product = Product(**_payload_to_columns(dict(payload)))

        try:
            self.session.add(product)
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise ProductError(f"Error creating product: slug '{payload.slug}' already exists") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise ProductError(f"Error creating product: {e}") from e

        self.audit.logUserAction(
            'PRODUCT_CREATED',
            'product',
            product.productID,
            {
                "name": product.name,
                "slug": product.slug,
                "price": product.priceCents / 100,
                "stock": product.stockQuantity,
            },
            userId=adminId
        )

        await self.eventBus.emit(ProductEvents.CREATED, {"product": self.serialize(product)})

        logger.info(f"✓ Product created: {product.slug} ({product.productID})")
        return product

    async def update(
            self,
            productId: str,
            payload: Union[ProductUpdatePayload, Dict[str, Any]],
            adminId: Optional[str] = None
    ) -> Product:
        product = await self.getById(productId)
        if product is None:
            raise ProductNotFoundError(f"Product {productId} not found")

        if not isinstance(payload, ProductUpdatePayload):
            payload = ProductUpdatePayload.model_validate(payload)

        data = {key: getattr(payload, key) for key in payload.model_fields_set}
        columns = _payload_to_columns(data)

        previous_stock = product.stockQuantity

        try:
            for column, value in columns.items():
                setattr(product, column, value)
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise ProductError("Error updating product: slug already exists") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise ProductError(f"Error updating product: {e}") from e

        metadata: Dict[str, Any] = {
            "name": product.name,
            "slug": product.slug,
            "fields": sorted(columns.keys()),
        }
        if 'stockQuantity' in columns and previous_stock != product.stockQuantity:
            metadata["previousStock"] = previous_stock
            metadata["stock"] = product.stockQuantity

        self.audit.logUserAction('PRODUCT_UPDATED', 'product', product.productID, metadata, userId=adminId)

        await self.eventBus.emit(ProductEvents.UPDATED, {"product": self.serialize(product)})

        logger.info(f"✓ Product updated: {product.slug}")
        return product

    async def delete(self, productId: str, adminId: Optional[str] = None) -> None:
        product = await self.getById(productId)

        if product is not None:
            metadata = {
                "name": product.name,
                "slug": product.slug,
                "price": product.priceCents / 100,
                "stock": product.stockQuantity,
            }
            try:
                self.session.delete(product)
                self.session.flush()
            except SQLAlchemyError as e:
                self.session.rollback()
                raise ProductError(f"Error deleting product: {e}") from e
        else:
            metadata = {"productId": productId}

        self.audit.logUserAction('PRODUCT_DELETED', 'product', productId, metadata, userId=adminId)

        await self.eventBus.emit(ProductEvents.DELETED, {"productId": productId})

        logger.info(f"Product deleted: {productId}")

    @staticmethod
    def serialize(product: Product) -> Dict[str, Any]:
        return {
            "id": product.productID,
            "slug": product.slug,
            "name": product.name,
            "description": product.description or '',
            "price": (product.priceCents or 0) / 100,
            "price_cents": product.priceCents or 0,
            "discount_type": product.discountType,
            "discount_value": float(product.discountValue) if product.discountValue is not None else None,
            "discount_label": product.discountLabel,
            "stock_quantity": product.stockQuantity or 0,
            "images": product.images or [],
            "is_featured": bool(product.isFeatured),
            "cart_visibility_countries": product.cartVisibilityCountries or [],
            "related_product_ids": product.relatedProductIDs or [],
            "created_at": iso(product.createdAt),
            "updated_at": iso(product.updatedAt),
        }
