import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import OperationalError

from pocketshop.core.config import settings

# 1. Infrastructure & Application Imports
from pocketshop.application.store_registry import OrderStoreRegistry
from pocketshop.infrastructure.database import Base, engine
from pocketshop.infrastructure.realtime import OrderFeed
from pocketshop.infrastructure.repositories.demo_order_repository import DemoOrderRepository
from pocketshop.infrastructure.repositories.order_repository import PostgresOrderRepository
from pocketshop.interfaces import orders_api
from pocketshop.interfaces.IOrderRepository import IOrderRepository

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# DATABASE CONNECTION (With Retry Logic)
# ---------------------------------------------------------
def init_database(max_retries: int = settings.DB_CONNECT_RETRIES, wait_seconds: float = settings.DB_RETRY_WAIT_SECONDS) -> bool:
    for attempt in range(max_retries):
        try:
            logger.info(f"🔄 Attempting DB connection ({attempt + 1}/{max_retries})...")
            Base.metadata.create_all(bind=engine)
            logger.info("✅ DB Connected and Tables Created.")
            return True
        except OperationalError as e:
            logger.warning(f"⚠️ DB not ready yet ({e}). Waiting {wait_seconds}s...")
            time.sleep(wait_seconds)
    logger.error("❌ Could not connect to DB after retries.")
    return False

# ---------------------------------------------------------
# COMPOSITION ROOT
# ---------------------------------------------------------
def build_repository(feed: OrderFeed) -> IOrderRepository:
    if settings.ORDER_REPOSITORY == "postgres":
        init_database()
        return PostgresOrderRepository(feed=feed)
    return DemoOrderRepository(feed=feed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    feed = OrderFeed(settings.REDIS_URL)
    # init_database retries with blocking sleeps; keep them off the event loop
    repository = await asyncio.to_thread(build_repository, feed)
    app.state.stores = OrderStoreRegistry(repository)
    logger.info(f"🚀 {settings.PROJECT_NAME} started with {type(repository).__name__}")
    yield
    app.state.stores.shutdown()
    await feed.close()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Include Routers
app.include_router(orders_api.router)

@app.get("/")
def health_check():
    status = "active" if hasattr(app.state, "stores") else "degraded"
    return {"status": status, "system": settings.PROJECT_NAME, "repository": settings.ORDER_REPOSITORY}
