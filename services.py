import logging
from typing import Any, Dict, List, Optional, Sequence

from bson.errors import InvalidId
from passlib.context import CryptContext
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from auth import Identity, SessionIssuer
from database import COL_ORDER, COL_PRODUCT, COL_USER, sanitize, to_obj_id
from errors import (
    DuplicateError,
    InternalError,
    InvalidCredentials,
    NotFoundError,
    ValidationError,
)
from schemas import Order as OrderSchema
from schemas import OrderItem, ShippingAddress
from schemas import Product as ProductSchema
from schemas import User as UserSchema

logger = logging.getLogger(__name__)

DUPLICATE_KEY = 11000

BASELINE_PRODUCTS = [
    ProductSchema(
        name="Smartphone Galaxy S24",
        price=2999.99,
        category="Electronics",
        description="Latest smartphone with advanced AI features",
        image="https://via.placeholder.com/300x300?text=Galaxy+S24",
        in_stock=True,
        rating=4.5,
        stock=25,
    ),
    ProductSchema(
        name="Wireless Bluetooth Headphones",
        price=349.99,
        category="Audio",
        description="Noise-cancelling headphones with 30h battery",
        image="https://via.placeholder.com/300x300?text=Headphones",
        in_stock=True,
        rating=4.3,
        stock=50,
    ),
    ProductSchema(
        name="Smart Watch Pro",
        price=899.99,
        category="Wearables",
        description="Health and fitness tracker with GPS",
        image="https://via.placeholder.com/300x300?text=Smart+Watch",
        in_stock=False,
        rating=4.7,
        stock=0,
    ),
    ProductSchema(
        name="Laptop Ultra Thin",
        price=4599.99,
        category="Computers",
        description="Lightweight laptop for professionals",
        image="https://via.placeholder.com/300x300?text=Laptop",
        in_stock=True,
        rating=4.8,
        stock=10,
    ),
    ProductSchema(
        name="Gaming Keyboard RGB",
        price=299.99,
        category="Accessories",
        description="Mechanical keyboard with RGB lighting",
        image="https://via.placeholder.com/300x300?text=Keyboard",
        in_stock=True,
        rating=4.4,
        stock=40,
    ),
    ProductSchema(
        name="Wireless Mouse",
        price=149.99,
        category="Accessories",
        description="Ergonomic wireless mouse",
        image="https://via.placeholder.com/300x300?text=Mouse",
        in_stock=True,
        rating=4.2,
        stock=60,
    ),
]


def public_user(doc: Dict) -> Dict[str, Any]:
    """User view safe to return to clients (never includes the password hash)."""
    return {"id": str(doc["_id"]), "name": doc.get("name", ""), "email": doc.get("email", "")}


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    def __init__(self, db: Database, issuer: SessionIssuer, pwd_context: CryptContext):
        self.users = db[COL_USER]
        self.issuer = issuer
        self.pwd_context = pwd_context

    def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        if not name or not email or not password or not name.strip() or not email.strip():
            raise ValidationError("Please provide name, email and password")
        email = normalize_email(email)

        try:
            if self.users.find_one({"email": email}):
                raise DuplicateError()
            user_doc = UserSchema(
                name=name.strip(),
                email=email,
                password=self.pwd_context.hash(password),
            ).to_document()
            res = self.users.insert_one(user_doc)
        except DuplicateKeyError:
            # lost a race with a concurrent registration; the unique index decides
            raise DuplicateError()
        except PyMongoError as e:
            logger.exception("Failed to register user %s", email)
            raise InternalError("Error registering user") from e

        user_doc["_id"] = res.inserted_id
        logger.info("New user registered with id %s", res.inserted_id)
        token = self.issuer.issue(str(res.inserted_id), email)
        return {"user": public_user(user_doc), "token": token}

    def login(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        if not email or not password or not email.strip():
            raise ValidationError("Please provide email and password")
        email = normalize_email(email)

        try:
            user = self.users.find_one({"email": email})
        except PyMongoError as e:
            logger.exception("Failed to look up user %s", email)
            raise InternalError("Error logging in") from e

        if not user:
            # same bcrypt cost as a real check, so timing does not reveal unknown emails
            self.pwd_context.dummy_verify()
        if not user or not self.pwd_context.verify(password, user.get("password", "")):
            logger.info("Failed login attempt for %s", email)
            raise InvalidCredentials()
        token = self.issuer.issue(str(user["_id"]), user["email"])
        return {"user": public_user(user), "token": token}


class CatalogService:
    def __init__(self, db: Database):
        self.products = db[COL_PRODUCT]

    def list_products(self) -> List[Dict[str, Any]]:
        try:
            return [sanitize(p) for p in self.products.find({})]
        except PyMongoError as e:
            logger.exception("Failed to list products")
            raise InternalError("Error fetching products") from e

    def get_product(self, product_id: str) -> Dict[str, Any]:
        try:
            doc = self.products.find_one({"_id": to_obj_id(product_id)})
        except (InvalidId, TypeError) as e:
            raise InternalError("Error fetching product") from e
        except PyMongoError as e:
            logger.exception("Failed to fetch product %s", product_id)
            raise InternalError("Error fetching product") from e
        if not doc:
            raise NotFoundError("Product not found")
        return sanitize(doc)

    def seed_if_empty(self) -> int:
        """Insert the baseline catalog when the collection is empty.

        Safe against concurrent startups: the unique index on name turns a
        second instance's inserts into duplicate-key errors, which are ignored.
        """
        if self.products.count_documents({}) > 0:
            logger.info("Catalog already populated, skipping seed")
            return 0
        docs = [p.to_document() for p in BASELINE_PRODUCTS]
        try:
            inserted = len(self.products.insert_many(docs, ordered=False).inserted_ids)
        except BulkWriteError as e:
            errors = e.details.get("writeErrors", [])
            if any(err.get("code") != DUPLICATE_KEY for err in errors):
                raise
            inserted = e.details.get("nInserted", 0)
        logger.info("Seeded %d baseline products", inserted)
        return inserted


class OrderService:
    def __init__(self, db: Database):
        self.orders = db[COL_ORDER]
        self.users = db[COL_USER]

    def _owner_view(self, user_id) -> Dict[str, Any]:
        user = self.users.find_one({"_id": user_id}, {"name": 1, "email": 1})
        if not user:
            return {"id": str(user_id)}
        return public_user(user)

    def _view(self, doc: Dict, owner: Dict[str, Any]) -> Dict[str, Any]:
        d = sanitize(doc)
        d["user"] = owner
        return d

    def create_order(
        self,
        identity: Identity,
        items: Optional[Sequence[OrderItem]],
        total: Optional[float],
        shipping_address: Optional[ShippingAddress] = None,
    ) -> Dict[str, Any]:
        if not items or total is None:
            raise ValidationError("Please provide items and total")

        try:
            owner_id = to_obj_id(identity.user_id)
        except InvalidId as e:
            raise InternalError("Error creating order") from e

        # items are stored as supplied; prices are not re-checked against the catalog
        order_doc = OrderSchema(
            user=owner_id,
            items=list(items),
            total=total,
            shipping_address=shipping_address,
        ).to_document()
        # owner is resolved before the write so a failure never leaves an orphaned order
        try:
            owner = self._owner_view(owner_id)
            res = self.orders.insert_one(order_doc)
        except PyMongoError as e:
            logger.exception("Failed to create order for user %s", identity.user_id)
            raise InternalError("Error creating order") from e

        order_doc["_id"] = res.inserted_id
        logger.info("Order %s created for user %s", res.inserted_id, identity.user_id)
        return self._view(order_doc, owner)

    def list_my_orders(self, identity: Identity) -> List[Dict[str, Any]]:
        try:
            owner_id = to_obj_id(identity.user_id)
        except InvalidId as e:
            raise InternalError("Error fetching orders") from e

        try:
            cursor = self.orders.find({"user": owner_id}).sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            docs = list(cursor)
            owner = self._owner_view(owner_id) if docs else None
        except PyMongoError as e:
            logger.exception("Failed to list orders for user %s", identity.user_id)
            raise InternalError("Error fetching orders") from e
        return [self._view(d, owner) for d in docs]
