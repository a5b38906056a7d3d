from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import os
from contextlib import asynccontextmanager
from core.config import settings
from core.logging_config import configure_logging
from core.cart_storage import build_cart_storage
from core.coupon_service import CouponService, CouponSequencer
from core.order_service import OrderService
from core.shipping_service import ShippingService
from core.storefront_api import StorefrontClient
from core.wishlist_store import WishlistService

# Rutas de endpoints importadas
from routes.carts import router as carts_router
from routes.wishlist import router as wishlist_router

configure_logging()
logger = logging.getLogger(__name__)

docs_url = "/docs" if os.getenv("ENV") == "development" else None
redoc_url = "/redoc" if os.getenv("ENV") == "development" else None
openapi_url = "/openapi.json" if os.getenv("ENV") == "development" else None

# ==================== LIFESPAN EVENTS ====================

def setup_services(app: FastAPI) -> None:
    """
    Crear storage y clientes de la API de la tienda una sola vez.
    Los endpoints los obtienen desde app.state mediante dependencias.
    """
    client = StorefrontClient(settings.STOREFRONT_API_URL, timeout=settings.STOREFRONT_API_TIMEOUT)

    app.state.cart_storage = build_cart_storage(settings)
    app.state.storefront_client = client
    app.state.coupon_service = CouponService(client)
    app.state.shipping_service = ShippingService(client)
    app.state.order_service = OrderService(client)
    app.state.coupon_sequencer = CouponSequencer()
    app.state.wishlist_service = WishlistService(client)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestiona el startup y shutdown de la aplicación.
    """
    # Startup
    setup_services(app)
    logger.info("✅ Servicios del carrito inicializados")
    yield
    # Shutdown
    await app.state.storefront_client.aclose()
    close_storage = getattr(app.state.cart_storage, "close", None)
    if close_storage:
        close_storage()
    logger.info("✅ Servicios del carrito detenidos")

app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    docs_url=docs_url,
    redoc_url=redoc_url,
    openapi_url=openapi_url,
    redirect_slashes=False,  # Evita redirects 307
    lifespan=lifespan
)

# CORS config - allow_credentials=True necesario para cookies HttpOnly
cors_origins = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:5173")
allow_origins = [origin.strip() for origin in cors_origins.split(",") if origin.strip() and origin.strip() != "*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== EXCEPTION HANDLERS ====================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Maneja errores de validación de Pydantic y los convierte al formato estándar.
    """
    error_messages = []
    validation_errors = []

    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"][1:])  # Omitir 'body'
        error_type = error["type"]

        if error_type == "missing":
            error_messages.append(f"El campo '{field}' es requerido")
        elif error_type.startswith("greater_than"):
            limit = error.get("ctx", {}).get("ge", error.get("ctx", {}).get("gt", ""))
            error_messages.append(f"El campo '{field}' debe ser mayor o igual a {limit}")
        elif error_type.startswith("less_than"):
            limit = error.get("ctx", {}).get("le", error.get("ctx", {}).get("lt", ""))
            error_messages.append(f"El campo '{field}' debe ser menor o igual a {limit}")
        elif error_type == "string_too_short":
            min_length = error.get("ctx", {}).get("min_length", "")
            error_messages.append(f"El campo '{field}' debe tener al menos {min_length} caracteres")
        elif error_type == "value_error":
            error_messages.append(f"El campo '{field}' tiene un valor inválido")
        else:
            error_messages.append(f"El campo '{field}': {error['msg']}")

        validation_errors.append({
            "field": field,
            "message": error_messages[-1],
            "type": error_type
        })

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "status_code": 400,
            "message": "Error de validación: " + "; ".join(error_messages),
            "error": "VALIDATION_ERROR",
            "details": validation_errors
        }
    )

# Registrar routers
app.include_router(carts_router)
app.include_router(wishlist_router)

@app.get("/")
async def root():
    return {
        "message": "Welcome to the Storefront Cart API",
        "version": settings.API_VERSION,
        "docs": "/docs"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}
