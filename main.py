import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from bson import ObjectId
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import AccessGuard, Identity, SessionIssuer, build_password_context
from config import Settings, configure_logging
from database import ensure_indexes, get_database
from errors import ApiError, InternalError, InvalidFields, ValidationError
from schemas import OrderItem, ShippingAddress
from services import CatalogService, CredentialStore, OrderService

logger = logging.getLogger(__name__)


def envelope(status_code: int = 200, **fields: Any) -> JSONResponse:
    """Uniform {success, data?, count?, message?, error?} response."""
    body = {"success": status_code < 400}
    body.update({k: v for k, v in fields.items() if v is not None})
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body, custom_encoder={ObjectId: str}))


# Request Models
class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: Optional[List[OrderItem]] = None
    total: Optional[float] = None
    shipping_address: Optional[ShippingAddress] = None


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None, issuer: Optional[SessionIssuer] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings)
    db = db if db is not None else get_database(settings)
    issuer = issuer or SessionIssuer(settings)

    credentials = CredentialStore(db, issuer, build_password_context(settings.bcrypt_rounds))
    catalog = CatalogService(db)
    orders = OrderService(db)
    require_identity = AccessGuard(issuer)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            ensure_indexes(db)
            catalog.seed_if_empty()
        except PyMongoError:
            logger.exception("Database unavailable at startup")
            raise
        logger.info("CresceVendas API ready")
        yield

    app = FastAPI(title="CresceVendas API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.db = db
    app.state.issuer = issuer

    # Error handlers
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return envelope(exc.status_code, message=exc.message, error=exc.error)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if all(e.get("type") == "missing" for e in errors):
            err = ValidationError("Please provide all required fields")
        else:
            err = InvalidFields()
        return envelope(err.status_code, message=err.message, error=err.error, data=jsonable_encoder(errors))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        err = InternalError()
        return envelope(err.status_code, message=err.message, error=err.error)

    # Utility endpoints
    @app.get("/")
    def root():
        try:
            db.command("ping")
            database = "connected"
        except Exception as e:
            database = f"error: {str(e)[:60]}"
        return envelope(message="CresceVendas API running", data={"backend": "ok", "database": database})

    # Auth Routes
    @app.post("/api/auth/register", status_code=201)
    def register(payload: RegisterRequest):
        result = credentials.register(payload.name, payload.email, payload.password)
        return envelope(201, message="User registered successfully", data=result)

    @app.post("/api/auth/login")
    def login(payload: LoginRequest):
        result = credentials.login(payload.email, payload.password)
        return envelope(message="Login successful", data=result)

    # Catalog
    @app.get("/api/products")
    def list_products():
        products = catalog.list_products()
        return envelope(data=products, count=len(products))

    @app.get("/api/products/{product_id}")
    def get_product(product_id: str):
        return envelope(data=catalog.get_product(product_id))

    # Orders
    @app.post("/api/orders", status_code=201)
    def create_order(payload: CreateOrderRequest, identity: Identity = Depends(require_identity)):
        order = orders.create_order(identity, payload.items, payload.total, payload.shipping_address)
        return envelope(201, message="Order created successfully", data=order)

    @app.get("/api/orders/my-orders")
    def my_orders(identity: Identity = Depends(require_identity)):
        mine = orders.list_my_orders(identity)
        return envelope(data=mine, count=len(mine))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
